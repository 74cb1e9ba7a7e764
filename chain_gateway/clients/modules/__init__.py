"""
Module Clients

Callers for the remote module endpoints that chain steps target.
"""

from chain_gateway.clients.modules.caller import (
    ModuleCaller,
    extract_path_params,
    resolve_path,
    query_params,
)
from chain_gateway.clients.modules.http import ModuleHTTPClient
from chain_gateway.clients.modules.models import ModuleRequest, ModuleResponse

__all__ = [
    'ModuleCaller',
    'ModuleHTTPClient',
    'ModuleRequest',
    'ModuleResponse',
    'extract_path_params',
    'resolve_path',
    'query_params',
]
