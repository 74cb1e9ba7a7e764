"""
Log Reader

Utilities for reading and analyzing per-execution JSONL logs.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional, Union

from .execution_logger import DEFAULT_LOG_DIR

logger = logging.getLogger(__name__)


class ExecutionLogReader:
    """Reader for execution logs"""

    def __init__(self, log_file: Union[str, Path]):
        """
        Initialize log reader

        Args:
            log_file: Path to the .jsonl log file
        """
        self.log_file = Path(log_file)
        self.entries: List[Dict[str, Any]] = []
        self.load()

    def load(self):
        """Load all log entries from file"""
        self.entries = []
        if not self.log_file.exists():
            raise FileNotFoundError(f"Log file not found: {self.log_file}")

        with open(self.log_file, 'r') as f:
            for line_num, line in enumerate(f, 1):
                if not line.strip():
                    continue
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError as e:
                    logger.warning(f"Failed to parse {self.log_file} line {line_num}: {e}")
                    continue
                entry['_line_number'] = line_num
                self.entries.append(entry)

    def get_events_by_type(self, event_type: str) -> List[Dict[str, Any]]:
        """
        Get all events of a specific type

        Args:
            event_type: Event type (e.g., 'step.failed', 'execution.finished')
        """
        return [e for e in self.entries if e.get('event') == event_type]

    def get_steps(self, depth: Optional[int] = None) -> List[Dict[str, Any]]:
        """Step events in execution order, optionally only at one nesting depth"""
        steps = [e for e in self.entries if e.get('event', '').startswith('step.')]
        if depth is not None:
            steps = [e for e in steps if e.get('depth') == depth]
        return steps

    def get_failed_steps(self) -> List[Dict[str, Any]]:
        return self.get_events_by_type('step.failed')

    def get_finished(self) -> Optional[Dict[str, Any]]:
        finished = self.get_events_by_type('execution.finished')
        return finished[-1] if finished else None

    def get_summary(self) -> Dict[str, Any]:
        """
        Get execution summary

        Returns:
            Summary dict with key information
        """
        finished = self.get_finished() or {}
        first = self.entries[0] if self.entries else {}
        top_level = self.get_steps(depth=0)

        return {
            'execution_id': first.get('execution_id'),
            'chain_id': first.get('chain_id'),
            'chain_name': first.get('chain_name'),
            'total_events': len(self.entries),
            'status': finished.get('status'),
            'success': finished.get('success'),
            'error': finished.get('error'),
            'error_code': finished.get('error_code'),
            'steps_executed': len(top_level),
            'executed_steps': [e.get('step_id') for e in top_level],
            'failed_steps': [e.get('step_id') for e in self.get_failed_steps()],
            'total_duration_ms': finished.get('total_duration_ms'),
        }


def find_execution_logs(log_dir: Optional[Union[str, Path]] = None) -> List[Path]:
    """
    Find all execution log files, newest first

    Args:
        log_dir: Directory to search (default: observability/logs/executions)
    """
    log_dir = Path(log_dir) if log_dir else DEFAULT_LOG_DIR

    if not log_dir.exists():
        return []

    return sorted(log_dir.glob("*.jsonl"), reverse=True)


def find_failed_executions(log_dir: Optional[Union[str, Path]] = None) -> List[Dict[str, Any]]:
    """
    Summaries of all executions that did not succeed

    Args:
        log_dir: Directory to search
    """
    failed = []
    for log_file in find_execution_logs(log_dir):
        summary = ExecutionLogReader(log_file).get_summary()
        if summary['success'] is False:
            summary['log_file'] = str(log_file)
            failed.append(summary)
    return failed
