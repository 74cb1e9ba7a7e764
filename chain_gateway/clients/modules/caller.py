"""
Module Endpoint Caller

Interface the engine uses to reach module endpoints, plus the path
parameter helpers shared by implementations.
"""

import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote, urlencode

from chain_gateway.clients.modules.models import ModuleRequest, ModuleResponse

_PATH_PARAM = re.compile(r":([a-zA-Z_][a-zA-Z0-9_]*)")


def extract_path_params(endpoint: str) -> List[str]:
    """
    Extract path parameter names from an endpoint

    Example:
        >>> extract_path_params("/character/:userId/:name")
        ['userId', 'name']
    """
    if not endpoint:
        return []
    return _PATH_PARAM.findall(endpoint)


def resolve_path(endpoint: str, params: Mapping[str, Any]) -> str:
    """
    Substitute :param placeholders in an endpoint

    Example:
        >>> resolve_path("/character/:userId/:name", {"userId": "user1", "name": "Thorin"})
        '/character/user1/Thorin'
    """
    def substitute(match):
        name = match.group(1)
        if params.get(name) is None:
            return match.group(0)
        return quote(str(params[name]), safe="")

    return _PATH_PARAM.sub(substitute, endpoint or "")


def query_params(endpoint: str, params: Mapping[str, Any]) -> Dict[str, Any]:
    """Params not consumed by the path, with null values dropped"""
    path_params = set(extract_path_params(endpoint))
    return {
        key: value
        for key, value in (params or {}).items()
        if key not in path_params and value is not None
    }


class ModuleCaller(ABC):
    """
    Performs calls to module endpoints

    Implementations return a ModuleResponse for every HTTP response (including
    non-2xx statuses) and raise ModuleCallError on transport failure or timeout.
    """

    def base_url(self, module: str) -> str:
        """Base URL of a module (empty when unknown)"""
        return ""

    def build_url(
        self,
        module: str,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None
    ) -> str:
        """Full URL for a request, used for the audit trail"""
        params = params or {}
        url = self.base_url(module).rstrip("/") + resolve_path(endpoint, params)
        query = query_params(endpoint, params)
        if query:
            url = f"{url}?{urlencode(query, doseq=True)}"
        return url

    @abstractmethod
    async def call(self, request: ModuleRequest) -> ModuleResponse:
        """Perform the call"""

    async def health_check(self) -> Dict[str, bool]:
        """Health of each known module"""
        return {}

    async def close(self) -> None:
        """Release resources"""
        return None
