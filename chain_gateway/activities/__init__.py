"""
Temporal Activities for chain execution

Activities perform the actual work that interacts with external systems.
"""

from .run_chain import ChainRunRequest, run_chain_activity

__all__ = [
    "ChainRunRequest",
    "run_chain_activity",
]
