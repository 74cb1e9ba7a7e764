"""
API models
"""

from .requests import ExecuteChainRequest, ExecuteAdHocChainRequest

__all__ = [
    'ExecuteChainRequest',
    'ExecuteAdHocChainRequest',
]
