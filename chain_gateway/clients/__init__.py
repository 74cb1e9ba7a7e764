"""
Client implementations for external services
"""

from chain_gateway.clients.modules import ModuleCaller, ModuleHTTPClient

__all__ = ['ModuleCaller', 'ModuleHTTPClient']
