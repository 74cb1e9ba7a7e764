"""
Temporal Workflow Definitions
"""

from chain_gateway.activities import ChainRunRequest
from .chain_workflow import ChainExecutionWorkflow

__all__ = [
    "ChainRunRequest",
    "ChainExecutionWorkflow",
]
