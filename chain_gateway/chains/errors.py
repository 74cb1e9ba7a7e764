"""
Chain Errors

Exception types raised by the chain engine and its collaborators.

Step-local failures (module errors, timeouts, failed sub-chains) are never
raised; they are recorded as data on the StepResult. The exceptions below are
either collaborator signals (ChainNotFoundError, ModuleCallError) or
execution-level faults that halt a run (ChainExecutionError).
"""

from enum import Enum
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import StepResult


class ErrorCode(str, Enum):
    """Execution-level failure codes surfaced on ExecutionResult.error_code"""
    INVALID_TARGET_STEP = "INVALID_TARGET_STEP"
    INVALID_TARGET_CHAIN = "INVALID_TARGET_CHAIN"
    MAX_STEPS_EXCEEDED = "MAX_STEPS_EXCEEDED"
    MAX_RECURSION_EXCEEDED = "MAX_RECURSION_EXCEEDED"
    CHAIN_NOT_FOUND = "CHAIN_NOT_FOUND"
    EVAL_ERROR = "EVAL_ERROR"


class ChainValidationError(Exception):
    """Raised when a chain definition is invalid"""
    pass


class ChainNotFoundError(Exception):
    """Raised by a chain store when a chain identifier is unknown"""

    def __init__(self, chain_id):
        self.chain_id = chain_id
        super().__init__(f"Chain '{chain_id}' not found")


class ModuleCallError(Exception):
    """Raised by a module caller on transport failure or timeout"""

    def __init__(self, message: str, module: Optional[str] = None):
        self.module = module
        super().__init__(message)


class ChainExecutionError(Exception):
    """
    Execution-level fault that halts the current run

    Attributes:
        code: One of ErrorCode
        message: Human-readable description
        step_result: Failed StepResult to append to the trace before halting
            (set when the fault happened while invoking a step)
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        step_result: Optional["StepResult"] = None
    ):
        self.code = ErrorCode(code)
        self.message = message
        self.step_result = step_result
        super().__init__(f"{self.code.value}: {message}")


class EvalError(ChainExecutionError):
    """Raised when a condition tree is malformed (empty group, unknown node)"""

    def __init__(self, message: str):
        super().__init__(ErrorCode.EVAL_ERROR, message)
