"""
Chain Engine

Service layer for running chains in the background through Temporal.
"""

import uuid
from typing import Any, Dict, Optional, Union

from temporalio.client import Client

from chain_gateway.workflows import ChainExecutionWorkflow, ChainRunRequest
from .models import ChainConfiguration, ChainId


class ChainEngine:
    """
    Engine for background chain runs

    Each run is a ChainExecutionWorkflow whose single activity executes the
    chain with the worker's ChainExecutor.
    """

    def __init__(self, temporal_client: Client, task_queue: str = "chain-gateway"):
        """
        Initialize chain engine

        Args:
            temporal_client: Connected Temporal client
            task_queue: Task queue served by the chain worker
        """
        self.client = temporal_client
        self.task_queue = task_queue

    async def start_chain(
        self,
        chain: Union[ChainConfiguration, ChainId],
        input: Optional[Dict[str, Any]] = None,
        env: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None
    ) -> str:
        """
        Start a background chain run

        Args:
            chain: Saved chain ID or ad-hoc ChainConfiguration
            input: Chain input
            env: Environment map
            user_id: Invoking user

        Returns:
            Workflow ID for tracking

        Example:
            engine = ChainEngine(temporal_client)
            workflow_id = await engine.start_chain(3, {"userId": "user1"})
            result = await engine.get_chain_result(workflow_id)
        """
        execution_id = str(uuid.uuid4())

        if isinstance(chain, ChainConfiguration):
            request = ChainRunRequest(
                chain_id=None if chain.id is None else str(chain.id),
                chain=chain.model_dump(mode="json", by_alias=True, exclude_none=True),
                input=dict(input or {}),
                env=dict(env or {}),
                user_id=user_id,
                execution_id=execution_id,
            )
            label = chain.name
        else:
            request = ChainRunRequest(
                chain_id=str(chain),
                input=dict(input or {}),
                env=dict(env or {}),
                user_id=user_id,
                execution_id=execution_id,
            )
            label = str(chain)

        workflow_id = f"chain-{label}-{execution_id}".replace(" ", "_")

        await self.client.start_workflow(
            ChainExecutionWorkflow.run,
            request,
            id=workflow_id,
            task_queue=self.task_queue
        )

        return workflow_id

    async def get_chain_status(self, workflow_id: str) -> Dict[str, Any]:
        """
        Get current status of a chain run

        Args:
            workflow_id: Chain workflow ID

        Returns:
            Status dict from the workflow's get_status query
        """
        handle = self.client.get_workflow_handle(workflow_id)
        return await handle.query(ChainExecutionWorkflow.get_status)

    async def get_chain_result(self, workflow_id: str) -> Dict[str, Any]:
        """
        Wait for a chain run to complete and get its ExecutionResult

        Args:
            workflow_id: Chain workflow ID

        Returns:
            ExecutionResult as dict
        """
        handle = self.client.get_workflow_handle(workflow_id)
        return await handle.result()

    async def cancel_chain(self, workflow_id: str) -> None:
        """
        Cancel a running chain

        Args:
            workflow_id: Chain workflow ID
        """
        handle = self.client.get_workflow_handle(workflow_id)
        await handle.cancel()
