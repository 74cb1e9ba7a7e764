"""
Pytest configuration and shared fixtures for chain gateway tests
"""

import asyncio
from typing import Any, Callable, Dict, List, Tuple, Union

import pytest

from chain_gateway.chains import ChainConfiguration, ChainExecutor, InMemoryChainStore
from chain_gateway.chains.errors import ModuleCallError
from chain_gateway.clients.modules import ModuleCaller, ModuleRequest, ModuleResponse
from chain_gateway.database import configure_database, init_db

Handler = Union[ModuleResponse, Callable[[ModuleRequest], Any], Exception]


class FakeModuleCaller(ModuleCaller):
    """
    In-process module caller

    Routes are keyed by (module, endpoint). A route is a ModuleResponse, an
    exception to raise, or a (sync or async) callable taking the request.
    """

    def __init__(self, routes: Dict[Tuple[str, str], Handler] = None):
        self.routes = dict(routes or {})
        self.calls: List[ModuleRequest] = []

    def base_url(self, module: str) -> str:
        return f"http://{module}.test"

    def route(self, module: str, endpoint: str, handler: Handler):
        self.routes[(module, endpoint)] = handler

    async def call(self, request: ModuleRequest) -> ModuleResponse:
        self.calls.append(request)
        handler = self.routes.get((request.module, request.endpoint))
        if handler is None:
            return ModuleResponse(data={"error": "not found"}, status=404, status_text="Not Found")
        if isinstance(handler, Exception):
            raise handler
        if isinstance(handler, ModuleResponse):
            return handler
        result = handler(request)
        if asyncio.iscoroutine(result):
            result = await result
        return result

    def endpoints_called(self) -> List[str]:
        return [f"{call.module}{call.endpoint}" for call in self.calls]


def ok(data: Any = None, status: int = 200) -> ModuleResponse:
    return ModuleResponse(data=data, status=status, status_text="OK")


def failed(status: int = 500, data: Any = None) -> ModuleResponse:
    return ModuleResponse(data=data, status=status, status_text="Internal Server Error")


def make_chain(**data) -> ChainConfiguration:
    data.setdefault("name", str(data.get("id", "chain")))
    return ChainConfiguration.model_validate(data)


def module_step(step_id: str, module: str = "svc", endpoint: str = None, **extra) -> Dict[str, Any]:
    step = {"id": step_id, "module": module, "endpoint": endpoint or f"/{step_id}"}
    step.update(extra)
    return step


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def caller() -> FakeModuleCaller:
    return FakeModuleCaller()


@pytest.fixture
def store() -> InMemoryChainStore:
    return InMemoryChainStore()


@pytest.fixture
def executor(store, caller) -> ChainExecutor:
    return ChainExecutor(store, caller, max_steps=50, max_recursion_depth=10)


@pytest.fixture
def database():
    """Fresh in-memory SQLite database"""
    engine = configure_database("sqlite://")
    init_db()
    yield engine
    engine.dispose()


@pytest.fixture
def transport_error() -> ModuleCallError:
    return ModuleCallError("No response from svc module: connection refused", module="svc")
