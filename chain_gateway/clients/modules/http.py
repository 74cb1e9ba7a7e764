"""
Module HTTP Client

Calls module REST endpoints over HTTP.
"""

import httpx
import logging
from typing import Dict, Any, Optional, Mapping

from chain_gateway.chains.errors import ModuleCallError
from chain_gateway.clients.modules.caller import ModuleCaller, resolve_path, query_params
from chain_gateway.clients.modules.models import ModuleRequest, ModuleResponse

logger = logging.getLogger(__name__)

BODY_METHODS = ("POST", "PUT", "PATCH")


class ModuleHTTPClient(ModuleCaller):
    """
    HTTP client for module endpoints

    One pooled httpx.AsyncClient is shared by all modules; each request
    carries its own timeout.

    Usage:
        client = ModuleHTTPClient({"character": "http://localhost:3031"})
        response = await client.call(ModuleRequest(
            module="character",
            endpoint="/character/:userId",
            params={"userId": "user1"},
        ))
    """

    def __init__(
        self,
        base_urls: Mapping[str, str],
        default_timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize module client

        Args:
            base_urls: Module name -> base URL
            default_timeout: Timeout in seconds when a request has none
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_urls = {name: url.rstrip("/") for name, url in base_urls.items()}
        self.default_timeout = default_timeout
        self.client = httpx.AsyncClient(
            timeout=default_timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

        logger.info(f"Module clients initialized: {', '.join(self.base_urls)}")

    def base_url(self, module: str) -> str:
        return self.base_urls.get(module, "")

    async def call(self, request: ModuleRequest) -> ModuleResponse:
        """
        Execute a module request

        Args:
            request: Module request

        Returns:
            ModuleResponse for any HTTP status

        Raises:
            ModuleCallError: Unknown module, transport failure or timeout
        """
        base_url = self.base_urls.get(request.module)
        if not base_url:
            raise ModuleCallError(f"Unknown module: {request.module}", module=request.module)

        method = str(getattr(request.method, "value", request.method)).upper()
        url = base_url + resolve_path(request.endpoint, request.params or {})
        kwargs: Dict[str, Any] = {
            "params": query_params(request.endpoint, request.params or {}),
            "headers": {k: str(v) for k, v in (request.headers or {}).items() if v is not None},
            "timeout": request.timeout or self.default_timeout,
        }
        if request.body is not None and method in BODY_METHODS:
            kwargs["json"] = request.body

        logger.debug(f"{method} {url}")

        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise ModuleCallError(
                f"Request to {request.module} module timed out: {e}",
                module=request.module
            )
        except httpx.RequestError as e:
            raise ModuleCallError(
                f"No response from {request.module} module: {e}",
                module=request.module
            )

        return ModuleResponse(
            data=self._decode(response),
            status=response.status_code,
            status_text=response.reason_phrase,
            headers=dict(response.headers),
            url=str(response.request.url),
        )

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    async def health_check(self) -> Dict[str, bool]:
        """
        Health check for all modules

        Returns:
            Module name -> True when GET /health answered 200
        """
        results = {}

        for module, base_url in self.base_urls.items():
            try:
                response = await self.client.get(f"{base_url}/health", timeout=5.0)
                results[module] = response.status_code == 200
            except httpx.HTTPError as e:
                logger.warning(f"Health check failed for {module}: {e}")
                results[module] = False

        return results

    async def close(self):
        """Close HTTP client"""
        await self.client.aclose()
