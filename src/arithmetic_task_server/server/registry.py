"""In-memory registry of submitted expressions."""
import threading
from typing import Callable, Dict, List

from arithmetic_task_server.common.errors import DuplicateIDError, ExpressionNotFoundError
from arithmetic_task_server.common.models import Expression


class ExpressionRegistry:
    """
    Authoritative store of all expressions for the lifetime of the process.

    Guarantees:
        - One lock guards every read and write.
        - Records are immutable; an update swaps the whole record, so readers
          see either the old or the new state, never a mix.
        - Append-only: records are never removed.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._expressions: Dict[str, Expression] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._expressions)

    def __contains__(self, expression_id: object) -> bool:
        with self._lock:
            return expression_id in self._expressions

    def put(self, expression: Expression) -> None:
        """
        Insert a new expression.

        :param Expression expression: Record to store under its own id

        :raises DuplicateIDError: If the id is already registered
        """
        with self._lock:
            if expression.id in self._expressions:
                raise DuplicateIDError(expression.id)
            self._expressions[expression.id] = expression

    def get(self, expression_id: str) -> Expression:
        """
        Return the current record for an id.

        :param str expression_id: Expression identifier

        :return: Current record
        :rtype: Expression
        :raises ExpressionNotFoundError: If the id is unknown
        """
        with self._lock:
            try:
                return self._expressions[expression_id]
            except KeyError:
                raise ExpressionNotFoundError(expression_id) from None

    def update(self, expression_id: str, mutator: Callable[[Expression], Expression]) -> Expression:
        """
        Atomically replace a record with ``mutator(record)``.

        The mutator runs under the registry lock and must not call back into the registry.

        :param str expression_id: Expression identifier
        :param mutator: Function building the new record from the current one

        :return: The new record
        :rtype: Expression
        :raises ExpressionNotFoundError: If the id is unknown
        """
        with self._lock:
            try:
                current = self._expressions[expression_id]
            except KeyError:
                raise ExpressionNotFoundError(expression_id) from None
            updated = mutator(current)
            if updated.id != expression_id:
                raise ValueError(f"Mutator changed the expression id: {expression_id} -> {updated.id}")
            self._expressions[expression_id] = updated
            return updated

    def list(self) -> List[Expression]:
        """Return a snapshot of every record. Order is unspecified."""
        with self._lock:
            return list(self._expressions.values())
