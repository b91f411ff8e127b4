"""Parse and evaluate arithmetic expressions safely."""
from collections.abc import Callable as ABCCallable
import math
import operator
import re
from typing import Callable, List, Protocol, Tuple, Union, runtime_checkable

from arithmetic_task_server.common.errors import EvaluationError, ParseError


# Type alias for operator functions (taking two floats, returning a float)
OperatorFn: ABCCallable[[float, float], float] = Callable[[float, float], float]

# Mapping of operator symbols to (precedence, function)
OPERATORS: dict[str, Tuple[int, OperatorFn]] = {
    "+": (1, operator.add),
    "-": (1, operator.sub),
    "*": (2, operator.mul),
    "/": (2, operator.truediv),
}

NUMBER_PATTERN = r"(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?"
_SIGNED_NUMBER_RE = re.compile(rf"[+-]?{NUMBER_PATTERN}")
# Anything that is not a number, an operator or a parenthesis falls into the
# last alternative and is rejected later as an unexpected token.
_TOKEN_RE = re.compile(rf"{NUMBER_PATTERN}|[-+*/()]|\S")

# Validated RPN program: numbers already converted, operators kept as symbols
RpnItem = Union[float, str]


@runtime_checkable
class Evaluator(Protocol):
    """Anything able to turn expression text into a number."""

    def evaluate(self, expr: str) -> float:
        """
        Evaluate an expression.

        :raises ParseError: If the text is not a valid expression
        :raises EvaluationError: If the value cannot be computed
        """
        ...


class ExpressionParser:
    """
    Parse and evaluate arithmetic expressions safely.

    Design constraints:
        - No eval(), no dynamic code execution
        - Safe, deterministic computation

    Algorithm:
        1. Tokenize numbers, operators and parentheses (spaces optional)
        2. Convert to Reverse Polish Notation (RPN) using Shunting-yard
        3. Evaluate RPN using a stack

    The Shunting-yard algorithm converts an infix expression into Reverse Polish Notation (RPN), allowing safe, stack-based evaluation without parentheses.
    It handles operator precedence by temporarily storing operators on a stack and outputting them in the correct order.

    A sign written directly in front of a number ("-3", "2 * -4") is read as part of that number.

    Examples:
        - Infix expression (standard notation): 3 + 4 * 2
        - Corresponding Reverse Polish Notation (RPN): 3 4 2 * +

    """

    @staticmethod
    def tokenize(expr: str) -> List[str]:
        """
        Split an arithmetic expression into tokens.

        :param str expr: Arithmetic expression as a string

        :return: List of tokens
        :rtype: List[str]
        """
        raw: List[str] = _TOKEN_RE.findall(expr)
        tokens: List[str] = []
        i = 0
        while i < len(raw):
            token = raw[i]
            previous = tokens[-1] if tokens else None
            is_unary_position = previous is None or previous in OPERATORS or previous == "("
            if (
                token in ("+", "-")
                and is_unary_position
                and i + 1 < len(raw)
                and ExpressionParser._is_number(raw[i + 1])
            ):
                # Fold the sign into the number that follows it
                tokens.append(token + raw[i + 1])
                i += 2
                continue
            tokens.append(token)
            i += 1
        return tokens

    @staticmethod
    def _is_number(token: str) -> bool:
        """
        Determine if a token represents a numeric literal, optionally signed.

        :param str token: Token string

        :return: True if token is a number literal, else False
        :rtype: bool
        """
        return _SIGNED_NUMBER_RE.fullmatch(token) is not None

    @staticmethod
    def to_rpn(tokens: List[str]) -> List[str]:
        """
        Convert a list of tokens into Reverse Polish Notation (RPN) using the Shunting-yard algorithm.

        :param List[str] tokens: List of arithmetic tokens

        :return: List of tokens in RPN order
        :rtype: List[str]
        :raises ParseError: On unknown tokens or unbalanced parentheses
        """
        output: List[str] = []
        stack: List[str] = []

        for token in tokens:
            if ExpressionParser._is_number(token):
                output.append(token)
            elif token == "(":
                stack.append(token)
            elif token == ")":
                while stack and stack[-1] != "(":
                    output.append(stack.pop())
                if not stack:
                    raise ParseError("Unbalanced parentheses: unexpected ')'")
                stack.pop()
            elif token in OPERATORS:
                # Pop operators from stack with higher or equal precedence (left associativity)
                prec = OPERATORS[token][0]
                while stack and stack[-1] in OPERATORS and OPERATORS[stack[-1]][0] >= prec:
                    output.append(stack.pop())
                stack.append(token)
            else:
                raise ParseError(f"Unexpected token: {token!r}")

        # Append remaining operators in reverse order (stack top first)
        while stack:
            token = stack.pop()
            if token == "(":
                raise ParseError("Unbalanced parentheses: missing ')'")
            output.append(token)
        return output

    @staticmethod
    def compile(expr: str) -> List[RpnItem]:
        """
        Parse an expression into a validated RPN program.

        Numbers are converted to float; the program is guaranteed to reduce
        to exactly one value.

        :param str expr: Arithmetic expression string

        :return: RPN program
        :rtype: List[RpnItem]
        :raises ParseError: If expression is invalid or malformed
        """
        tokens: List[str] = ExpressionParser.tokenize(expr)

        if not tokens:
            raise ParseError("Empty expression")

        program: List[RpnItem] = []
        depth = 0
        for token in ExpressionParser.to_rpn(tokens):
            if ExpressionParser._is_number(token):
                value = float(token)
                if not math.isfinite(value):
                    raise ParseError(f"Number out of range: {token}")
                program.append(value)
                depth += 1
            else:
                # Operator requires two operands
                if depth < 2:
                    raise ParseError(f"Invalid expression (not enough operands): {expr}")
                program.append(token)
                depth -= 1

        if depth != 1:
            raise ParseError(f"Invalid expression (remaining operands): {expr}")

        return program

    @staticmethod
    def evaluate(expr: str) -> float:
        """
        Evaluate an arithmetic expression safely.

        :param str expr: Arithmetic expression string

        :return: Computed result as float
        :rtype: float
        :raises ParseError: If expression is invalid or malformed
        :raises EvaluationError: On division by zero or a non-finite result
        """
        stack: List[float] = []
        for item in ExpressionParser.compile(expr):
            if isinstance(item, float):
                stack.append(item)
                continue
            b: float = stack.pop()
            a: float = stack.pop()
            try:
                value = OPERATORS[item][1](a, b)
            except ZeroDivisionError:
                raise EvaluationError(f"Division by zero in expression: {expr}") from None
            # Intermediate values must be finite too
            if not math.isfinite(value):
                raise EvaluationError(f"Expression does not evaluate to a finite number: {expr}")
            stack.append(value)

        return stack[0]
