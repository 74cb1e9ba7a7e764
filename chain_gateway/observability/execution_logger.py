"""
Execution Logger using structlog

Creates per-execution log files in JSONL format. Each top-level execution
gets its own file with one event per recorded step, nested chain runs
included.
"""

import json
import structlog
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from chain_gateway.chains.models import ExecutionResult, StepResult

DEFAULT_LOG_DIR = Path(__file__).parent / "logs" / "executions"


class ExecutionLogger:
    """Logger for a single chain execution"""

    def __init__(self, result: ExecutionResult, log_dir: Optional[Union[str, Path]] = None):
        """
        Initialize logger for a finished execution

        Args:
            result: Execution result to log
            log_dir: Directory for log files (default: observability/logs/executions)
        """
        self.result = result

        log_dir = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
        log_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        self.log_file = log_dir / f"{timestamp}_{result.execution_id}.jsonl"

    def _bind(self, file):
        """structlog logger rendering JSON lines into `file`"""
        logger = structlog.wrap_logger(
            structlog.PrintLogger(file=file),
            processors=[
                structlog.processors.add_log_level,
                structlog.processors.TimeStamper(fmt="iso", utc=True),
                structlog.processors.JSONRenderer(default=str),
            ],
        )
        return logger.bind(
            execution_id=self.result.execution_id,
            chain_id=self.result.chain_id,
            chain_name=self.result.chain_name,
        )

    def write(self) -> Path:
        """Write the whole execution to the log file"""
        result = self.result
        with open(self.log_file, 'a') as f:
            log = self._bind(f)
            log.info(
                "execution.started",
                user_id=result.user_id,
                input=result.input,
                started_at=result.started_at.isoformat(),
            )
            self._log_steps(log, result, depth=0)

            finished = log.error if result.error_code else log.info
            finished(
                "execution.finished",
                status=result.status.value,
                success=result.success,
                error=result.error,
                error_code=result.error_code,
                output=result.output,
                step_count=len(result.steps),
                total_duration_ms=result.total_duration_ms,
                jumped_to_chain_id=result.jumped_to_chain_id,
                completed_at=result.completed_at.isoformat(),
            )
        return self.log_file

    def _log_steps(self, log, result: ExecutionResult, depth: int):
        for step in result.steps:
            self._log_step(log, step, depth)
            if step.sub_chain_result is not None:
                self._log_steps(log, step.sub_chain_result, depth + 1)
        if result.jump_result is not None:
            log.info("chain.jumped", depth=depth, target_chain_id=result.jumped_to_chain_id)
            self._log_steps(log, result.jump_result, depth + 1)

    def _log_step(self, log, step: StepResult, depth: int):
        if step.skipped:
            event = "step.skipped"
        elif step.success:
            event = "step.completed"
        else:
            event = "step.failed"

        data = step.model_dump(mode="json", exclude={"sub_chain_result"})
        data.pop("step_id")
        data["step_timestamp"] = data.pop("timestamp")
        (log.warning if event == "step.failed" else log.info)(
            event, step_id=step.step_id, depth=depth, **data
        )

    def get_log_contents(self) -> list:
        """Read back the log entries"""
        entries = []
        if self.log_file.exists():
            with open(self.log_file, 'r') as f:
                for line in f:
                    if line.strip():
                        entries.append(json.loads(line))
        return entries


def write_execution_log(result: ExecutionResult, log_dir: Optional[Union[str, Path]] = None) -> Path:
    """
    Write an execution's JSONL log

    Returns:
        Path of the written log file
    """
    return ExecutionLogger(result, log_dir).write()
