"""
Chain Gateway SDK

Simple Python SDK for executing chains through the gateway.
"""

from .client import ChainGatewaySDK, execute_chain

__all__ = ['ChainGatewaySDK', 'execute_chain']
__version__ = '1.0.0'
