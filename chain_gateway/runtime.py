"""
Runtime wiring

Builds the process-wide chain executor from settings. The gateway, the
Temporal activity and the worker share it through get_executor().
"""

import logging
from typing import List, Optional

from chain_gateway.chains import ChainExecutor, ChainStore, InMemoryChainStore, YamlChainStore
from chain_gateway.clients.modules import ModuleHTTPClient
from chain_gateway.config import Settings, get_settings
from chain_gateway.database import DatabaseChainStore, configure_database, init_db
from chain_gateway.observability import DatabaseExecutionSink, ExecutionLogSink, JsonlExecutionSink

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> ChainStore:
    """Chain store selected by settings.chain_store"""
    if settings.chain_store == "database":
        return DatabaseChainStore()
    if settings.chain_store == "memory":
        return InMemoryChainStore()
    return YamlChainStore(settings.chains_dir)


def build_sinks(settings: Settings) -> List[ExecutionLogSink]:
    sinks: List[ExecutionLogSink] = []
    if settings.record_history:
        sinks.append(DatabaseExecutionSink())
    if settings.execution_log_dir:
        sinks.append(JsonlExecutionSink(settings.execution_log_dir))
    return sinks


def build_executor(settings: Optional[Settings] = None) -> ChainExecutor:
    """
    Build an executor from settings

    Initializes the database when chains or history live there.
    """
    settings = settings or get_settings()

    if settings.chain_store == "database" or settings.record_history:
        configure_database(settings.database_url)
        init_db()

    executor = ChainExecutor(
        store=build_store(settings),
        caller=ModuleHTTPClient(
            settings.modules,
            default_timeout=settings.module_timeout_ms / 1000,
        ),
        max_steps=settings.max_chain_steps,
        max_recursion_depth=settings.max_recursion_depth,
        sinks=build_sinks(settings),
        default_timeout_ms=settings.module_timeout_ms,
    )

    logger.info(
        f"Chain executor ready (store={settings.chain_store}, "
        f"max_steps={settings.max_chain_steps}, max_depth={settings.max_recursion_depth})"
    )
    return executor


_executor: Optional[ChainExecutor] = None


def get_executor() -> ChainExecutor:
    """Process-wide executor (built on first use)"""
    global _executor
    if _executor is None:
        _executor = build_executor()
    return _executor


def set_executor(executor: Optional[ChainExecutor]):
    """Replace the process-wide executor (None resets it)"""
    global _executor
    _executor = executor
