"""
API request models
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from chain_gateway.chains.models import ChainConfiguration


class ExecuteChainRequest(BaseModel):
    """Request to execute (or start) a saved chain"""
    input: Dict[str, Any] = Field(default_factory=dict, description="Chain input")
    env: Dict[str, Any] = Field(default_factory=dict, description="Values exposed as {{env.*}}")
    user_id: Optional[str] = None


class ExecuteAdHocChainRequest(ExecuteChainRequest):
    """Request to execute a chain definition that is not saved"""
    chain: ChainConfiguration
