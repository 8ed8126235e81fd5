"""Worker process for evaluating arithmetic expressions."""
from multiprocessing.connection import Connection

from pydantic import BaseModel, ConfigDict, Field

from calcnote.common.errors import EvalError
from calcnote.common.logger import logger
from calcnote.common.operations import OperationResult
from calcnote.common.parser import ExpressionParser


class WorkerProcess(BaseModel):
    """
    Worker process responsible for evaluating a single arithmetic expression.

    Lifecycle:
        - Spawned by the parent server process
        - Receives one expression only
        - Sends an OperationResult (as a dict) through a Pipe
        - Terminates immediately after computation
    """

    # Make the Pydantic instance immutable (read-only) for safety
    # Allow arbitrary types like multiprocessing.Connection
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    conn: Connection = Field(..., description="Connection object for sending results back to server")
    expression: str = Field(..., description="Single arithmetic expression to evaluate")
    line_number: int = Field(..., ge=1, description="Line number in the input file")

    def evaluate(self) -> OperationResult:
        """
        Evaluate the expression, turning evaluation failures into error results.

        :return: Outcome for this line
        :rtype: OperationResult
        """
        try:
            result = ExpressionParser.evaluate(self.expression)
        except EvalError as exc:
            logger.error(
                f"👷❌ Worker failed on line {self.line_number}: {exc}\n"
                f"Invalid arithmetic expression, could not evaluate: {self.expression!r}"
            )
            return OperationResult.from_error(self.line_number, self.expression, exc)

        logger.info(f"👷✅ Worker finished on line {self.line_number}: {result}")
        return OperationResult(line=self.line_number, expression=self.expression, result=result)

    def run(self) -> None:
        """
        Evaluate the arithmetic expression and send the outcome through the pipe.

        :return: None
        """
        logger.info(f"👷🏁 Worker started on line {self.line_number}: {self.expression}")
        try:
            self.conn.send(self.evaluate().model_dump(mode="json"))
        finally:
            # Always close the connection
            self.conn.close()
