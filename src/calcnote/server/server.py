"""TCP server that evaluates arithmetic expressions using worker processes."""
from multiprocessing import Pipe, Process, cpu_count
from multiprocessing.connection import Connection, wait
from pathlib import Path
import socket
from typing import List, Optional, TextIO, Tuple

from pydantic import BaseModel, ConfigDict, Field, IPvAnyAddress

from calcnote.common.logger import logger
from calcnote.common.operations import OperationResult
from calcnote.server.worker import WorkerProcess

# (process, parent end of the pipe, line number, expression)
ActiveWorker = Tuple[Process, Connection, int, str]


class ExpressionServer(BaseModel):
    """
    TCP socket server evaluating the expressions sent by one client.

    Features:
        - Spawns one worker process per expression.
        - Writes results immediately to disk as soon as a worker finishes.
        - Ensures each worker is destroyed immediately after finishing.
        - Keeps at most ``max_workers`` workers alive at the same time.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    host: IPvAnyAddress = Field(default="127.0.0.1", validate_default=True, description="Server host address")
    port: int = Field(default=9000, ge=1, le=65535, description="Server TCP port")
    output_file: Path = Field(..., description="Path to write computation results")
    max_workers: int = Field(default_factory=cpu_count, ge=1, description="Maximum concurrent worker processes")

    def _receive_data(self, conn: socket.socket) -> List[str]:
        """
        Receive all data from the client connection and return non-empty lines.

        :param socket.socket conn: Connected client socket

        :return: List of non-empty expression lines
        :rtype: List[str]
        """
        # Data may arrive in multiple packets
        chunks: List[bytes] = []
        while True:
            chunk: bytes = conn.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
        data: List[str] = b"".join(chunks).decode().splitlines()
        return [line.strip() for line in data if line.strip()]

    def _spawn_worker(self, expr: str, line_number: int) -> ActiveWorker:
        """
        Spawn a WorkerProcess for the given expression.

        :param str expr: Arithmetic expression
        :param int line_number: Line number of expression in input

        :return: Tuple of (Process, parent pipe end, line number, expression)
        :rtype: ActiveWorker
        """
        parent_conn, child_conn = Pipe()
        worker = WorkerProcess(conn=child_conn, expression=expr, line_number=line_number)
        process = Process(target=worker.run)
        process.start()
        # The child owns its end now
        child_conn.close()
        return process, parent_conn, line_number, expr

    @staticmethod
    def _read_result(pipe_conn: Connection, line_number: int, expr: str) -> OperationResult:
        """Read a worker's outcome, turning a silent worker exit into an error result."""
        try:
            return OperationResult.model_validate(pipe_conn.recv())
        except EOFError:
            logger.error(f"👷💥 Worker for line {line_number} exited without a result")
            return OperationResult(line=line_number, expression=expr, error="worker exited without a result")

    def _collect_finished_workers(
        self, active_workers: List[ActiveWorker], f_out: TextIO, timeout: Optional[float] = None
    ) -> None:
        """
        Block until at least one worker has reported, then collect every reported result.

        A worker has reported once its pipe holds a result or is closed.
        Collected workers are joined, removed from active_workers and their
        results written to the output file.

        :param list active_workers: Workers still running or not yet collected
        :param TextIO f_out: Open file handle for writing results
        :param float timeout: Seconds to wait, None waits until a worker reports
        """
        ready = wait([pipe_conn for _, pipe_conn, _, _ in active_workers], timeout)

        # Iterate in reverse to safely remove collected workers while iterating
        for i in reversed(range(len(active_workers))):
            proc, pipe_conn, line_number, expr = active_workers[i]
            if pipe_conn in ready:
                outcome = self._read_result(pipe_conn, line_number, expr)
                pipe_conn.close()
                proc.join()
                active_workers.pop(i)

                # Write output immediately
                f_out.write(outcome.render() + "\n")
                f_out.flush()

    def serve_connection(self, conn: socket.socket) -> None:
        """
        Evaluate every expression sent on an accepted connection and reply with the results file.

        :param socket.socket conn: Connected client socket
        """
        with self.output_file.open("w", encoding="utf-8") as f_out:
            data: List[str] = self._receive_data(conn)
            logger.info(f"📥 Received {len(data)} expressions")

            active_workers: List[ActiveWorker] = []
            for line_number, expr in enumerate(data, start=1):
                # Wait until a worker slot is available
                while len(active_workers) >= self.max_workers:
                    self._collect_finished_workers(active_workers, f_out)
                active_workers.append(self._spawn_worker(expr, line_number))

            # Collect remaining active workers
            while active_workers:
                self._collect_finished_workers(active_workers, f_out)

        try:
            conn.sendall(self.output_file.read_bytes())
            logger.info("✉️ Results sent to client")
        except OSError as exc:
            logger.error(f"🔌❌ Client disconnected before receiving results: {exc}")

    def start(self) -> None:
        """
        Start the TCP server, accept one client connection, and process its arithmetic expressions.

        Steps:
            1. Bind and listen on the specified host and port.
            2. Accept a single client connection.
            3. Receive all expressions from the client.
            4. Spawn worker processes for each expression, at most max_workers at once.
            5. Write results to output file immediately after worker finishes.
            6. Send the final results back to the client.

        :return: None
        """
        logger.info(f"🖥️ Starting server on {self.host}:{self.port}")

        family = socket.AF_INET6 if self.host.version == 6 else socket.AF_INET
        with socket.socket(family, socket.SOCK_STREAM) as s:
            s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            s.bind((str(self.host), self.port))
            s.listen()
            logger.info("🖥️ Server listening")

            conn, address = s.accept()
            logger.info(f"🔌 Client connected from {address[0]}")
            with conn:
                self.serve_connection(conn)
