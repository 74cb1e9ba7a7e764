"""
Execution Log Sinks

Destinations notified once per finished top-level execution.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from chain_gateway.chains.models import ExecutionResult
from chain_gateway.database import get_session, save_execution

from .execution_logger import write_execution_log

logger = logging.getLogger(__name__)


class ExecutionLogSink(ABC):
    """Receives finished execution results"""

    @abstractmethod
    def record(self, result: ExecutionResult) -> None:
        """Record one execution (failures are logged by the executor and ignored)"""


class DatabaseExecutionSink(ExecutionLogSink):
    """Saves executions to the execution_history table"""

    def record(self, result: ExecutionResult) -> None:
        with get_session() as session:
            record = save_execution(session, result)
            logger.debug(f"Saved execution {result.execution_id} as record {record.id}")


class JsonlExecutionSink(ExecutionLogSink):
    """Writes one JSONL audit file per execution"""

    def __init__(self, log_dir: Optional[Union[str, Path]] = None):
        self.log_dir = Path(log_dir) if log_dir else None

    def record(self, result: ExecutionResult) -> None:
        path = write_execution_log(result, self.log_dir)
        logger.debug(f"Wrote execution log {path}")
