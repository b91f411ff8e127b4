"""HTTP client for the public expression API."""
from pathlib import Path
import tarfile
import tempfile
import time
from typing import Dict, List, Optional
import zipfile

import httpx
import py7zr
from pydantic import BaseModel, ConfigDict, Field, FilePath

from arithmetic_task_server.common.logger import logger
from arithmetic_task_server.common.models import CalculateResponse, Expression, ExpressionList, ExpressionStatus


def read_expressions(input_file: FilePath) -> List[str]:
    """
    Read one expression per line from a text file or from the first .txt file of an archive.

    Supported formats:
    - .txt
    - .zip
    - .tar.xz
    - .7z

    :param FilePath input_file: Path to the text file or archive

    :return: Non-empty, stripped lines
    :rtype: List[str]
    :raises ValueError: If no .txt file is found or the format is unsupported
    """
    if input_file.suffix == ".txt":
        content = input_file.read_text(encoding="utf-8")
    elif input_file.suffix == ".zip":
        with zipfile.ZipFile(input_file, "r") as zf:
            names = [n for n in zf.namelist() if n.endswith(".txt")]
            if not names:
                raise ValueError(f"📄❌ No .txt file found in {input_file.name}")
            content = zf.read(names[0]).decode("utf-8")
    elif input_file.suffixes[-2:] == [".tar", ".xz"]:
        with tarfile.open(input_file, "r:xz") as tf:
            members = [m for m in tf.getmembers() if m.isfile() and m.name.endswith(".txt")]
            if not members:
                raise ValueError(f"📄❌ No .txt file found in {input_file.name}")
            content = tf.extractfile(members[0]).read().decode("utf-8")
    elif input_file.suffix == ".7z":
        # 7z members are only reachable through extraction to disk
        with tempfile.TemporaryDirectory() as tmpdir, py7zr.SevenZipFile(input_file, mode="r") as archive:
            names = [n for n in archive.getnames() if n.endswith(".txt")]
            if not names:
                raise ValueError(f"📄❌ No .txt file found in {input_file.name}")
            archive.extract(path=tmpdir, targets=[names[0]])
            content = (Path(tmpdir) / names[0]).read_text(encoding="utf-8")
    else:
        raise ValueError(f"📄❌ Unsupported input format: {''.join(input_file.suffixes)}")

    return [line.strip() for line in content.splitlines() if line.strip()]


class CalculatorClient(BaseModel):
    """
    Client for the public API of the arithmetic task server.

    The client:
    - submits expressions and returns their ids
    - reads expression records, one or all
    - waits for expressions to complete
    - evaluates a whole file of expressions and writes the results to an output file
    """

    # Immutable, so the target server cannot change in the middle of a batch
    model_config = ConfigDict(frozen=True)

    base_url: str = Field(default="http://127.0.0.1:8080", description="Server base URL")
    timeout: float = Field(default=10.0, gt=0, description="Per-request timeout in seconds")

    def _client(self) -> httpx.Client:
        return httpx.Client(base_url=self.base_url, timeout=self.timeout)

    @staticmethod
    def _raise_for_error(response: httpx.Response) -> None:
        """Raise ValueError carrying the server message for client errors, HTTPStatusError otherwise."""
        if 400 <= response.status_code < 500:
            try:
                message = response.json()["error"]["message"]
            except (ValueError, KeyError, TypeError):
                message = response.text
            raise ValueError(message)
        response.raise_for_status()

    def submit(self, expression: str) -> str:
        """
        Submit one expression.

        :param str expression: Expression text

        :return: Id of the created expression
        :rtype: str
        :raises ValueError: If the server rejects the expression
        """
        with self._client() as http:
            response = http.post("/api/v1/calculate", json={"expression": expression})
        self._raise_for_error(response)
        return CalculateResponse.model_validate(response.json()).id

    def get_expression(self, expression_id: str) -> Expression:
        with self._client() as http:
            response = http.get(f"/api/v1/expressions/{expression_id}")
        self._raise_for_error(response)
        return Expression.model_validate(response.json())

    def list_expressions(self) -> List[Expression]:
        with self._client() as http:
            response = http.get("/api/v1/expressions")
        self._raise_for_error(response)
        return ExpressionList.model_validate(response.json()).expressions

    def wait_for(self, expression_ids: List[str], timeout: float = 30.0, poll_interval: float = 0.2) -> Dict[str, Expression]:
        """
        Poll until every expression is completed or the timeout expires.

        :param expression_ids: Ids to wait for
        :param float timeout: Maximum number of seconds to wait
        :param float poll_interval: Seconds between polls

        :return: Latest record of each id, completed or not
        :rtype: Dict[str, Expression]
        """
        deadline = time.monotonic() + timeout
        latest: Dict[str, Expression] = {}
        with self._client() as http:
            while True:
                for expression_id in expression_ids:
                    if expression_id in latest and latest[expression_id].status == ExpressionStatus.COMPLETED:
                        continue
                    response = http.get(f"/api/v1/expressions/{expression_id}")
                    self._raise_for_error(response)
                    latest[expression_id] = Expression.model_validate(response.json())

                if all(e.status == ExpressionStatus.COMPLETED for e in latest.values()):
                    return latest
                if time.monotonic() >= deadline:
                    return latest
                time.sleep(poll_interval)

    def send_file(self, input_file: FilePath, output_file: Path, timeout: float = 30.0) -> None:
        """
        Evaluate every expression of an input file or archive and write the results to an output file.

        Each output line is ``expr = result``, ``expr -> ERROR: message`` when the server
        rejected the expression, or ``expr -> PENDING`` when it did not complete in time.

        :param FilePath input_file: Path to the input file or archive
        :param Path output_file: Path where results will be written
        :param float timeout: Maximum number of seconds to wait for completion
        """
        expressions = read_expressions(input_file)
        logger.info(f"✉️ Submitting {len(expressions)} expression(s) from {input_file}")

        submitted: List[Optional[str]] = []
        errors: Dict[int, str] = {}
        for index, expr in enumerate(expressions):
            try:
                submitted.append(self.submit(expr))
            except ValueError as exc:
                submitted.append(None)
                errors[index] = str(exc)

        records = self.wait_for([i for i in submitted if i is not None], timeout=timeout)

        with output_file.open("w", encoding="utf-8") as f_out:
            for index, (expr, expression_id) in enumerate(zip(expressions, submitted)):
                if expression_id is None:
                    f_out.write(f"{expr} -> ERROR: {errors[index]}\n")
                    continue
                record = records[expression_id]
                if record.status == ExpressionStatus.COMPLETED:
                    # A zero result is left out of the payload
                    result = record.result if record.result is not None else 0.0
                    f_out.write(f"{expr} = {result}\n")
                else:
                    f_out.write(f"{expr} -> PENDING\n")
        logger.info(f"✉️ Results written to {output_file}")
