"""
Command-line entrypoint.

Subcommands:
- serve: run the HTTP server (with its in-process agent loop)
- worker: run a remote worker polling a server for tasks
- submit: evaluate a file of expressions through a running server
"""

import argparse
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, FilePath, ValidationError
import uvicorn

from arithmetic_task_server.client.agent import RemoteWorker
from arithmetic_task_server.client.client import CalculatorClient
from arithmetic_task_server.common.logger import setup_logging
from arithmetic_task_server.config import get_settings
from arithmetic_task_server.server.server import create_app


class CliArgs(BaseModel):
    """
    Pydantic model used to validate CLI arguments.

    Attributes
    ----------
    command : str
        Subcommand to run.
    host : str
        Bind address (serve) or server address (worker, submit).
    port : int
        Listening port (serve) or server port (worker, submit).
    file_path : FilePath, optional
        File or archive of expressions (submit only).
    """

    command: Literal["serve", "worker", "submit"]
    host: str
    port: int = Field(..., ge=1, le=65535)
    file_path: Optional[FilePath] = None
    max_tasks: Optional[int] = Field(default=None, ge=1)
    poll_interval: float = Field(default=1.0, ge=0)
    timeout: float = Field(default=30.0, gt=0)

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"


def parse_args(argv: Optional[List[str]] = None) -> CliArgs:
    """
    Parse and validate command-line arguments.

    Host and port default to the HOST and PORT environment settings.

    :return: Validated CLI arguments
    :rtype: CliArgs
    """
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Arithmetic task server")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", default=settings.host)
    serve.add_argument("--port", type=int, default=settings.port)

    worker = subparsers.add_parser("worker", help="Run a remote worker")
    worker.add_argument("--host", default="127.0.0.1")
    worker.add_argument("--port", type=int, default=settings.port)
    worker.add_argument("--max-tasks", type=int, default=None)
    worker.add_argument("--poll-interval", type=float, default=1.0)

    submit = subparsers.add_parser("submit", help="Evaluate a file of expressions")
    submit.add_argument("file_path", help="Path to the file containing arithmetic expressions")
    submit.add_argument("--host", default="127.0.0.1")
    submit.add_argument("--port", type=int, default=settings.port)
    submit.add_argument("--timeout", type=float, default=30.0)

    args = parser.parse_args(argv)

    try:
        return CliArgs(**{k: v for k, v in vars(args).items() if v is not None})
    except ValidationError as exc:
        parser.error(str(exc))


def build_output_path(input_path: Path) -> Path:
    """
    Construct a safe output file path based on the input file.

    - Preserves the original folder
    - Replaces dots in extensions with underscores
    - Appends '_results.txt' at the end

    Examples
    --------
    input: resources/operations_short.7z
    output: resources/operations_short_7z_results.txt

    :param input_path: Path to the input file
    :return: Path to the output file
    """
    suffixes = "".join(input_path.suffixes)
    base = input_path.name[: -len(suffixes)] if suffixes else input_path.name
    suffix_safe = suffixes.replace(".", "_")
    return input_path.with_name(f"{base}{suffix_safe}_results.txt")


def main(argv: Optional[List[str]] = None) -> None:
    cli_args = parse_args(argv)
    settings = get_settings()
    setup_logging(settings.log_level)

    if cli_args.command == "serve":
        uvicorn.run(create_app(settings), host=cli_args.host, port=cli_args.port, log_level=settings.log_level.lower())
    elif cli_args.command == "worker":
        worker = RemoteWorker(base_url=cli_args.base_url, poll_interval=cli_args.poll_interval)
        worker.run(max_tasks=cli_args.max_tasks)
    else:
        input_path = Path(cli_args.file_path)
        client = CalculatorClient(base_url=cli_args.base_url)
        client.send_file(input_path, build_output_path(input_path), timeout=cli_args.timeout)


if __name__ == "__main__":
    main()
