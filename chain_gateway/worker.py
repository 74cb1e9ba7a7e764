"""
Temporal Worker for chain runs

This worker connects to Temporal Server and executes background chain runs.
Run this alongside the FastAPI gateway.
"""

import asyncio
import logging

from temporalio.client import Client
from temporalio.worker import Worker

from chain_gateway.activities import run_chain_activity
from chain_gateway.config import get_settings
from chain_gateway.runtime import get_executor
from chain_gateway.workflows import ChainExecutionWorkflow

logger = logging.getLogger(__name__)


async def main():
    """Start the Temporal worker"""
    settings = get_settings()

    # Build the executor up front so configuration errors surface at startup
    executor = get_executor()

    client = await Client.connect(settings.temporal_address)

    worker = Worker(
        client,
        task_queue=settings.temporal_task_queue,
        workflows=[ChainExecutionWorkflow],
        activities=[run_chain_activity],
    )

    logger.info("=" * 60)
    logger.info("Chain Worker Started")
    logger.info("=" * 60)
    logger.info(f"Connected to: {settings.temporal_address}")
    logger.info(f"Task Queue: {settings.temporal_task_queue}")
    logger.info(f"Modules: {', '.join(settings.modules)}")
    logger.info("=" * 60)

    try:
        await worker.run()
    finally:
        await executor.caller.close()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    asyncio.run(main())
