"""
Chain System

Provides tools for defining, validating, and executing module chains.

Usage:
    from chain_gateway.chains import ChainExecutor, InMemoryChainStore, load_chain
    from chain_gateway.clients import ModuleHTTPClient

    store = InMemoryChainStore([load_chain("chains/character_context.yaml")])
    caller = ModuleHTTPClient({"character": "http://localhost:3031"})

    executor = ChainExecutor(store, caller)
    result = await executor.execute("character_context", {"userId": "user1"})
    print(result.success, result.output)
"""

from .models import (
    ChainCallStep,
    ChainConfiguration,
    ChainStep,
    Condition,
    ConditionGroup,
    ConditionLeaf,
    ConditionOperator,
    ExecutionResult,
    ExecutionStatus,
    HttpMethod,
    ModuleCallStep,
    RoutingAction,
    RoutingRule,
    StepRequest,
    StepResult,
)

from .errors import (
    ChainExecutionError,
    ChainNotFoundError,
    ChainValidationError,
    ErrorCode,
    EvalError,
    ModuleCallError,
)

from .context import ExecutionContext, MISSING, resolve_path
from .conditions import evaluate
from .templates import render, find_references
from .routing import ControlAction, ControlActionKind, RoutingDecision, RoutingEngine
from .invoker import StepInvoker
from .executor import ChainExecutor

from .service import (
    load_chain,
    load_chain_from_dict,
    discover_chains,
    validate_chain,
    chain_references,
    find_chain_cycles,
    get_chain_summary,
)

from .store import ChainStore, InMemoryChainStore, YamlChainStore

__all__ = [
    # Models
    "ChainCallStep",
    "ChainConfiguration",
    "ChainStep",
    "Condition",
    "ConditionGroup",
    "ConditionLeaf",
    "ConditionOperator",
    "ExecutionResult",
    "ExecutionStatus",
    "HttpMethod",
    "ModuleCallStep",
    "RoutingAction",
    "RoutingRule",
    "StepRequest",
    "StepResult",

    # Errors
    "ChainExecutionError",
    "ChainNotFoundError",
    "ChainValidationError",
    "ErrorCode",
    "EvalError",
    "ModuleCallError",

    # Engine
    "ExecutionContext",
    "MISSING",
    "resolve_path",
    "evaluate",
    "render",
    "find_references",
    "ControlAction",
    "ControlActionKind",
    "RoutingDecision",
    "RoutingEngine",
    "StepInvoker",
    "ChainExecutor",

    # Service functions
    "load_chain",
    "load_chain_from_dict",
    "discover_chains",
    "validate_chain",
    "chain_references",
    "find_chain_cycles",
    "get_chain_summary",

    # Stores
    "ChainStore",
    "InMemoryChainStore",
    "YamlChainStore",
]
