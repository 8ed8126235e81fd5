"""Test class ExpressionServer."""
from multiprocessing import Pipe, Process
from pathlib import Path
import time

from pydantic import ValidationError
import pytest

from calcnote.common.operations import OperationResult
from calcnote.server.server import ExpressionServer


@pytest.fixture
def tmp_output_file(tmp_path: Path) -> Path:
    """Create a temporary output file path."""
    return tmp_path / "results.txt"


class FakeSocket:
    """Mock socket to simulate client-server communication."""

    def __init__(self, lines: list[str]):
        self.data = "\n".join(lines).encode()
        self.sent_data = b""
        self.offset = 0

    def recv(self, bufsize: int) -> bytes:
        if self.offset >= len(self.data):
            return b""
        chunk = self.data[self.offset : self.offset + bufsize]
        self.offset += bufsize
        return chunk

    def sendall(self, data: bytes) -> None:
        self.sent_data += data

    def close(self) -> None:
        pass


def _noop() -> None:
    pass


def _send_then_linger(conn) -> None:
    conn.send(OperationResult(line=1, expression="6 / 3", result="2").model_dump(mode="json"))
    conn.close()
    time.sleep(0.5)


def test_server_invalid_config(tmp_output_file: Path) -> None:
    """Ports and worker counts are validated."""
    with pytest.raises(ValidationError):
        ExpressionServer(port=0, output_file=tmp_output_file)
    with pytest.raises(ValidationError):
        ExpressionServer(output_file=tmp_output_file, max_workers=0)


def test_receive_data(tmp_output_file: Path) -> None:
    """_receive_data returns non-empty lines from socket."""
    fake_socket = FakeSocket(["2 + 3", "", "   ", "4 * 5"])
    server = ExpressionServer(host="127.0.0.1", port=9000, output_file=tmp_output_file)
    assert server._receive_data(fake_socket) == ["2 + 3", "4 * 5"]


def test_spawn_worker_returns_process_and_pipe(tmp_output_file: Path) -> None:
    """_spawn_worker returns a running Process and the parent end of its Pipe."""
    server = ExpressionServer(host="127.0.0.1", port=9000, output_file=tmp_output_file)
    proc, parent_pipe, line_number, expr = server._spawn_worker("1 + 1", 1)
    assert (line_number, expr) == (1, "1 + 1")

    payload = parent_pipe.recv()
    proc.join()
    assert OperationResult.model_validate(payload).result == "2"


def test_collect_finished_workers_writes_results(tmp_output_file: Path) -> None:
    """_collect_finished_workers writes rendered results to file."""
    server = ExpressionServer(host="127.0.0.1", port=9000, output_file=tmp_output_file)

    parent_conn, child_conn = Pipe()
    # simulate worker payload
    child_conn.send(OperationResult(line=1, expression="2 + 3", result="5").model_dump(mode="json"))
    child_conn.close()

    proc = Process(target=_noop)
    proc.start()
    proc.join()

    active_workers = [(proc, parent_conn, 1, "2 + 3")]
    with tmp_output_file.open("w") as f_out:
        server._collect_finished_workers(active_workers, f_out)

    assert active_workers == []
    assert tmp_output_file.read_text() == "2 + 3 = 5\n"


def test_collect_worker_without_result(tmp_output_file: Path) -> None:
    """A worker that exits without sending produces an error line."""
    server = ExpressionServer(host="127.0.0.1", port=9000, output_file=tmp_output_file)

    parent_conn, child_conn = Pipe()
    child_conn.close()

    proc = Process(target=_noop)
    proc.start()
    proc.join()

    with tmp_output_file.open("w") as f_out:
        server._collect_finished_workers([(proc, parent_conn, 4, "1+1")], f_out)

    assert tmp_output_file.read_text() == "1+1 -> ERROR: worker exited without a result\n"


@pytest.mark.parametrize("max_workers", [1, 2, 8])
def test_serve_connection(tmp_output_file: Path, max_workers: int) -> None:
    """Every expression is evaluated by a worker and the results file is sent back."""
    lines = ["2 + 3", "", "1/0", "4 * 5", "-5+2", "(1+2"]
    fake_socket = FakeSocket(lines)

    server = ExpressionServer(output_file=tmp_output_file, max_workers=max_workers)
    server.serve_connection(fake_socket)

    content = tmp_output_file.read_text().splitlines()
    # Results are written in completion order
    assert sorted(content) == sorted([
        "2 + 3 = 5",
        "1/0 -> ERROR: division by zero",
        "4 * 5 = 20",
        "-5+2 = -3",
        "(1+2 -> ERROR: mismatched parentheses",
    ])
    assert fake_socket.sent_data == tmp_output_file.read_bytes()


def test_serve_connection_without_expressions(tmp_output_file: Path) -> None:
    fake_socket = FakeSocket(["", "  "])
    server = ExpressionServer(output_file=tmp_output_file, max_workers=2)
    server.serve_connection(fake_socket)

    assert tmp_output_file.read_text() == ""
    assert fake_socket.sent_data == b""


def test_collect_waits_without_collecting_silent_workers(tmp_output_file: Path) -> None:
    """A worker that has not reported is left alone once the timeout expires."""
    server = ExpressionServer(output_file=tmp_output_file)

    parent_conn, child_conn = Pipe()
    proc = Process(target=time.sleep, args=(30,))
    proc.start()
    active_workers = [(proc, parent_conn, 1, "1+1")]
    try:
        with tmp_output_file.open("w") as f_out:
            server._collect_finished_workers(active_workers, f_out, timeout=0.1)
        assert len(active_workers) == 1
        assert tmp_output_file.read_text() == ""
    finally:
        proc.terminate()
        proc.join()
        child_conn.close()
        parent_conn.close()


def test_collect_picks_up_result_before_worker_exits(tmp_output_file: Path) -> None:
    """Collection is driven by the pipe, not by polling the process state."""
    server = ExpressionServer(output_file=tmp_output_file)

    parent_conn, child_conn = Pipe()
    proc = Process(target=_send_then_linger, args=(child_conn,))
    proc.start()
    child_conn.close()

    active_workers = [(proc, parent_conn, 1, "6 / 3")]
    with tmp_output_file.open("w") as f_out:
        server._collect_finished_workers(active_workers, f_out, timeout=10)

    assert active_workers == []
    assert not proc.is_alive()
    assert tmp_output_file.read_text() == "6 / 3 = 2\n"
