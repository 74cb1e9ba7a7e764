"""
Observability - Execution Logging

Per-execution audit logs and execution history sinks.
"""

from .execution_logger import ExecutionLogger, write_execution_log
from .log_reader import ExecutionLogReader, find_execution_logs, find_failed_executions
from .sinks import ExecutionLogSink, DatabaseExecutionSink, JsonlExecutionSink

__all__ = [
    'ExecutionLogger',
    'write_execution_log',
    'ExecutionLogReader',
    'find_execution_logs',
    'find_failed_executions',
    'ExecutionLogSink',
    'DatabaseExecutionSink',
    'JsonlExecutionSink',
]
