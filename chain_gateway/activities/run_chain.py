"""
Activity: Run a chain with the process-wide executor
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Any, Optional

from temporalio import activity

from chain_gateway.chains.models import ChainConfiguration
from chain_gateway.runtime import get_executor

HEARTBEAT_INTERVAL = 5.0


@dataclass
class ChainRunRequest:
    """Input for a background chain run"""
    chain_id: Optional[str] = None  # Saved chain ID or name
    chain: Optional[Dict[str, Any]] = None  # Ad-hoc chain definition (used when set)
    input: Dict[str, Any] = field(default_factory=dict)
    env: Dict[str, Any] = field(default_factory=dict)
    user_id: Optional[str] = None
    execution_id: Optional[str] = None
    timeout_seconds: int = 3600


@activity.defn
async def run_chain_activity(request: ChainRunRequest) -> Dict[str, Any]:
    """
    Activity: Execute a chain and return its ExecutionResult

    Heartbeats while the chain runs so that workflow cancellation reaches
    the activity; the in-flight chain is then cancelled with it.

    Args:
        request: Chain run request (saved chain ID or ad-hoc definition)

    Returns:
        ExecutionResult as JSON-compatible dict
    """
    if request.chain is not None:
        chain = ChainConfiguration.model_validate(request.chain)
    elif request.chain_id:
        chain = request.chain_id
    else:
        raise ValueError("ChainRunRequest needs chain_id or chain")

    activity.logger.info(f"Running chain {request.chain_id or chain.name} (execution {request.execution_id})")

    task = asyncio.ensure_future(get_executor().execute(
        chain,
        request.input,
        env=request.env,
        user_id=request.user_id,
        execution_id=request.execution_id,
    ))

    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=HEARTBEAT_INTERVAL)
            if done:
                break
            activity.heartbeat({"execution_id": request.execution_id})
    except asyncio.CancelledError:
        activity.logger.info(f"Chain run {request.execution_id} cancelled")
        task.cancel()
        raise

    result = task.result()
    activity.logger.info(f"Chain run {result.execution_id}: {result.status.value}")
    return result.model_dump(mode="json")
