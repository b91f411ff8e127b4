"""Test class CalculatorClient and read_expressions."""
import tarfile
import zipfile

from fastapi.testclient import TestClient
import httpx
import py7zr
from pydantic import ValidationError
import pytest

from arithmetic_task_server.client.client import CalculatorClient, read_expressions
from arithmetic_task_server.common.models import ExpressionStatus
from arithmetic_task_server.config import Settings
from arithmetic_task_server.server.server import create_app


def route_to_app(monkeypatch, agent_enabled: bool) -> None:
    """Make every httpx.Client created by the client talk to an in-process app."""
    app = create_app(Settings(agent_enabled=agent_enabled))
    monkeypatch.setattr(httpx, "Client", lambda base_url, timeout: TestClient(app, base_url=base_url))


def test_client_defaults() -> None:
    client = CalculatorClient()
    assert client.base_url == "http://127.0.0.1:8080"


def test_client_is_frozen() -> None:
    """The target server cannot be changed after creation."""
    client = CalculatorClient()
    with pytest.raises(ValidationError):
        client.base_url = "http://elsewhere:1"


def test_client_invalid_timeout() -> None:
    with pytest.raises(ValidationError):
        CalculatorClient(timeout=0)


def test_submit_and_get(monkeypatch) -> None:
    """submit returns an id that get_expression and list_expressions know."""
    route_to_app(monkeypatch, agent_enabled=False)
    client = CalculatorClient()

    expression_id = client.submit("2 + 2")
    record = client.get_expression(expression_id)

    assert record.id == expression_id
    assert record.status == ExpressionStatus.PENDING
    assert [e.id for e in client.list_expressions()] == [expression_id]


def test_submit_rejected_expression(monkeypatch) -> None:
    """A 400 from the server becomes a ValueError carrying its message."""
    route_to_app(monkeypatch, agent_enabled=False)
    with pytest.raises(ValueError, match="not enough operands"):
        CalculatorClient().submit("2 +")


def test_get_unknown_expression(monkeypatch) -> None:
    route_to_app(monkeypatch, agent_enabled=False)
    with pytest.raises(ValueError, match="not found"):
        CalculatorClient().get_expression("missing")


def test_send_file_txt(tmp_path, monkeypatch) -> None:
    """Verify sending a plain text file writes results and errors to output."""
    route_to_app(monkeypatch, agent_enabled=True)
    input_file = tmp_path / "ops.txt"
    output_file = tmp_path / "results.txt"
    input_file.write_text("1 + 1\n\n2 * 3\n2 +\n")

    CalculatorClient().send_file(input_file, output_file, timeout=5)

    lines = output_file.read_text().splitlines()
    assert lines[0] == "1 + 1 = 2.0"
    assert lines[1] == "2 * 3 = 6.0"
    assert lines[2].startswith("2 + -> ERROR: ")


def test_send_file_reports_pending(tmp_path, monkeypatch) -> None:
    """Expressions not completed before the timeout are reported as pending."""
    route_to_app(monkeypatch, agent_enabled=False)
    input_file = tmp_path / "ops.txt"
    output_file = tmp_path / "results.txt"
    input_file.write_text("1 + 1\n7\n")

    CalculatorClient().send_file(input_file, output_file, timeout=0.05)

    assert output_file.read_text().splitlines() == ["1 + 1 -> PENDING", "7 = 7.0"]


def test_send_file_zero_result(tmp_path, monkeypatch) -> None:
    """A completed expression served without a result is written as zero."""
    route_to_app(monkeypatch, agent_enabled=True)
    input_file = tmp_path / "ops.txt"
    output_file = tmp_path / "results.txt"
    input_file.write_text("2 - 2\n0\n")

    CalculatorClient().send_file(input_file, output_file, timeout=5)

    assert output_file.read_text().splitlines() == ["2 - 2 = 0.0", "0 = 0.0"]


def test_read_expressions_txt(tmp_path) -> None:
    txt = tmp_path / "ops.txt"
    txt.write_text("  1 + 1 \n\n2 * 2\n")
    assert read_expressions(txt) == ["1 + 1", "2 * 2"]


def test_read_expressions_zip(tmp_path) -> None:
    """Check that a .zip archive can be read correctly."""
    txt = tmp_path / "ops.txt"
    txt.write_text("3+3\n")

    zip_path = tmp_path / "ops.zip"
    with zipfile.ZipFile(zip_path, "w") as zf:
        zf.write(txt, arcname="ops.txt")

    assert read_expressions(zip_path) == ["3+3"]


def test_read_expressions_tar_xz(tmp_path) -> None:
    """Check that a .tar.xz archive can be read correctly."""
    txt = tmp_path / "ops.txt"
    txt.write_text("4*4\n")

    tar_path = tmp_path / "ops.tar.xz"
    with tarfile.open(tar_path, "w:xz") as tf:
        tf.add(txt, arcname="ops.txt")

    assert read_expressions(tar_path) == ["4*4"]


def test_read_expressions_7z(tmp_path) -> None:
    """Check that a .7z archive can be read correctly."""
    txt = tmp_path / "ops.txt"
    txt.write_text("5-2\n")

    archive_path = tmp_path / "ops.7z"
    with py7zr.SevenZipFile(archive_path, "w") as archive:
        archive.write(txt, arcname="ops.txt")

    assert read_expressions(archive_path) == ["5-2"]


def test_read_expressions_archive_without_txt(tmp_path) -> None:
    """Verify that reading fails if no .txt file exists in the archive."""
    zip_path = tmp_path / "empty.zip"
    with zipfile.ZipFile(zip_path, "w") as zf:
        zf.writestr("data.bin", b"\x00\x01")

    with pytest.raises(ValueError):
        read_expressions(zip_path)


def test_read_expressions_unsupported_format(tmp_path) -> None:
    """Ensure unsupported formats raise a ValueError."""
    file_path = tmp_path / "ops.rar"
    file_path.write_text("1+1")

    with pytest.raises(ValueError):
        read_expressions(file_path)
