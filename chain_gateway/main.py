"""
Chain Gateway

FastAPI gateway for executing module chains, either inline or in the
background through Temporal.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException
from temporalio.client import Client

from chain_gateway.chains import (
    ChainExecutor,
    ChainNotFoundError,
    ErrorCode,
    get_chain_summary,
    validate_chain,
)
from chain_gateway.chains.engine import ChainEngine
from chain_gateway.config import get_settings
from chain_gateway.database import (
    execution_to_dict,
    get_execution,
    get_session,
    get_statistics,
    list_executions,
)
from chain_gateway.models import ExecuteAdHocChainRequest, ExecuteChainRequest
from chain_gateway.runtime import get_executor

logger = logging.getLogger(__name__)

app = FastAPI(title="Chain Gateway", version="1.0.0")

# Temporal client (will be initialized on startup)
temporal_client: Optional[Client] = None

# Chain engine (None when Temporal is unreachable)
chain_engine: Optional[ChainEngine] = None


@app.on_event("startup")
async def startup():
    """Build the executor and connect to Temporal Server"""
    global temporal_client, chain_engine

    settings = get_settings()
    get_executor()

    try:
        temporal_client = await Client.connect(settings.temporal_address)
        chain_engine = ChainEngine(temporal_client, task_queue=settings.temporal_task_queue)
        logger.info(f"Connected to Temporal: {settings.temporal_address}")
    except Exception as e:
        logger.warning(f"Temporal unavailable at {settings.temporal_address}, background runs disabled: {e}")

    logger.info(f"Chain Gateway started (modules: {', '.join(settings.modules)})")


@app.on_event("shutdown")
async def shutdown():
    """Cleanup on shutdown"""
    await get_executor().caller.close()


# ============================================================================
# Dependencies
# ============================================================================

def get_chain_executor() -> ChainExecutor:
    return get_executor()


def get_chain_engine() -> ChainEngine:
    if chain_engine is None:
        raise HTTPException(status_code=503, detail="Temporal not connected")
    return chain_engine


async def _load_chain(executor: ChainExecutor, chain_id: str):
    try:
        return await executor.store.get_chain(chain_id)
    except ChainNotFoundError:
        raise HTTPException(status_code=404, detail=f"Chain '{chain_id}' not found")


# ============================================================================
# Health
# ============================================================================

@app.get("/health")
async def health_check():
    """Gateway health check"""
    return {
        "status": "healthy",
        "temporal_connected": chain_engine is not None,
        "version": app.version
    }


@app.get("/modules/health")
async def modules_health(executor: ChainExecutor = Depends(get_chain_executor)):
    """Health of each configured module"""
    modules = await executor.caller.health_check()
    return {
        "modules": modules,
        "healthy": all(modules.values()) if modules else False
    }


# ============================================================================
# Chain Endpoints
# ============================================================================

@app.get("/chains")
async def list_chains(
    user_id: Optional[str] = None,
    executor: ChainExecutor = Depends(get_chain_executor)
):
    """
    List available chains

    Returns:
        List of chain summaries with name, description, and step count
    """
    chains = await executor.store.list_chains(user_id=user_id)
    summaries = [get_chain_summary(chain) for chain in chains]
    return {"chains": summaries, "count": len(summaries)}


@app.get("/chains/status/{workflow_id}")
async def get_chain_status(workflow_id: str, engine: ChainEngine = Depends(get_chain_engine)):
    """Current status of a background chain run"""
    try:
        return await engine.get_chain_status(workflow_id)
    except Exception as e:
        raise HTTPException(status_code=404, detail=f"Chain run not found: {str(e)}")


@app.get("/chains/result/{workflow_id}")
async def get_chain_result(workflow_id: str, engine: ChainEngine = Depends(get_chain_engine)):
    """
    Wait for a background chain run to complete and get its ExecutionResult
    """
    try:
        return await engine.get_chain_result(workflow_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get chain result: {str(e)}")


@app.post("/chains/cancel/{workflow_id}")
async def cancel_chain(workflow_id: str, engine: ChainEngine = Depends(get_chain_engine)):
    """Cancel a background chain run"""
    try:
        await engine.cancel_chain(workflow_id)
    except Exception as e:
        raise HTTPException(status_code=404, detail=f"Failed to cancel chain run: {str(e)}")
    return {"workflow_id": workflow_id, "status": "cancelling"}


@app.get("/chains/{chain_id}")
async def get_chain_details(chain_id: str, executor: ChainExecutor = Depends(get_chain_executor)):
    """
    Get a chain definition with its summary and validation report
    """
    chain = await _load_chain(executor, chain_id)
    known = await executor.store.list_chains()

    return {
        "chain": chain.model_dump(mode="json", by_alias=True, exclude_none=True),
        "summary": get_chain_summary(chain),
        "validation": validate_chain(chain, known),
    }


@app.post("/chains/execute")
async def execute_ad_hoc_chain(
    request: ExecuteAdHocChainRequest,
    executor: ChainExecutor = Depends(get_chain_executor)
) -> Dict[str, Any]:
    """
    Execute a chain definition supplied in the request

    Returns:
        ExecutionResult
    """
    result = await executor.execute(
        request.chain,
        request.input,
        env=request.env,
        user_id=request.user_id,
    )
    return result.model_dump(mode="json")


@app.post("/chains/{chain_id}/execute")
async def execute_chain(
    chain_id: str,
    request: ExecuteChainRequest,
    executor: ChainExecutor = Depends(get_chain_executor)
) -> Dict[str, Any]:
    """
    Execute a saved chain and wait for its result

    Execution-level failures are returned as the ExecutionResult body; only
    an unknown top-level chain is a 404.
    """
    result = await executor.execute(
        chain_id,
        request.input,
        env=request.env,
        user_id=request.user_id,
    )

    if result.error_code == ErrorCode.CHAIN_NOT_FOUND.value and not result.steps:
        raise HTTPException(status_code=404, detail=result.error)

    return result.model_dump(mode="json")


@app.post("/chains/{chain_id}/start")
async def start_chain(
    chain_id: str,
    request: ExecuteChainRequest,
    executor: ChainExecutor = Depends(get_chain_executor),
    engine: ChainEngine = Depends(get_chain_engine)
):
    """
    Start a saved chain in the background

    Returns workflow_id for tracking the run
    """
    chain = await _load_chain(executor, chain_id)

    try:
        workflow_id = await engine.start_chain(
            chain_id,
            request.input,
            env=request.env,
            user_id=request.user_id,
        )
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to start chain: {str(e)}")

    return {
        "workflow_id": workflow_id,
        "chain_name": chain.name,
        "status": "started",
        "message": f"Chain run started. Use /chains/status/{workflow_id} to check progress."
    }


# ============================================================================
# Execution History
# ============================================================================

@app.get("/executions")
async def list_execution_history(
    user_id: Optional[str] = None,
    chain_id: Optional[str] = None,
    success: Optional[bool] = None,
    limit: int = 50,
    offset: int = 0
):
    """List recorded executions, newest first"""
    with get_session() as session:
        records = list_executions(
            session,
            user_id=user_id,
            chain_id=chain_id,
            success=success,
            limit=min(max(limit, 1), 500),
            offset=max(offset, 0),
        )
        executions = [execution_to_dict(record, include_steps=False) for record in records]
    return {"executions": executions, "count": len(executions)}


@app.get("/executions/{execution_id}")
async def get_execution_details(execution_id: str):
    """Full trace of a recorded execution"""
    with get_session() as session:
        record = get_execution(session, execution_id)
        if record is None:
            raise HTTPException(status_code=404, detail=f"Execution '{execution_id}' not found")
        return execution_to_dict(record)


@app.get("/stats")
async def execution_statistics():
    """Aggregate execution statistics"""
    with get_session() as session:
        return get_statistics(session)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001, log_level="info")
