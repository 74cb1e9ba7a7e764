"""
Chain Execution Workflow

Temporal workflow that runs a chain in the background through a single
activity attempt.
"""

from dataclasses import replace
from datetime import timedelta
from typing import Any, Dict, Optional

from temporalio import workflow
from temporalio.common import RetryPolicy

with workflow.unsafe.imports_passed_through():
    from chain_gateway.activities import ChainRunRequest, run_chain_activity


@workflow.defn
class ChainExecutionWorkflow:
    """
    Durable background chain run

    Execution-level failures are part of the returned ExecutionResult, so
    the activity is never retried.
    """

    def __init__(self):
        self._status = "initializing"
        self._request: Optional[ChainRunRequest] = None
        self._result: Optional[Dict[str, Any]] = None

    @workflow.run
    async def run(self, request: ChainRunRequest) -> Dict[str, Any]:
        """
        Execute chain

        Args:
            request: Chain run request

        Returns:
            ExecutionResult as dict
        """
        if not request.execution_id:
            request = replace(request, execution_id=str(workflow.uuid4()))
        self._request = request
        self._status = "running"

        workflow.logger.info(f"Starting chain run {request.execution_id}")

        try:
            result = await workflow.execute_activity(
                run_chain_activity,
                request,
                start_to_close_timeout=timedelta(seconds=request.timeout_seconds),
                heartbeat_timeout=timedelta(seconds=30),
                retry_policy=RetryPolicy(maximum_attempts=1),
            )
        except Exception as e:
            self._status = "failed"
            workflow.logger.error(f"Chain run {request.execution_id} failed: {e}")
            raise

        self._result = result
        self._status = result.get("status", "completed")
        workflow.logger.info(f"Chain run {request.execution_id}: {self._status}")
        return result

    @workflow.query
    def get_status(self) -> Dict[str, Any]:
        """Current run status"""
        request = self._request
        return {
            "status": self._status,
            "execution_id": request.execution_id if request else None,
            "chain_id": request.chain_id if request else None,
            "success": self._result.get("success") if self._result else None,
            "error_code": self._result.get("error_code") if self._result else None,
        }
