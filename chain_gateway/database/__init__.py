"""
Database module for Chain Gateway

Provides SQLAlchemy models and CRUD operations for chain definitions and
execution history.
"""

from .models import ChainDefinitionRecord, ExecutionRecord, Base
from .session import get_session, get_engine, configure_database, init_db
from .crud import (
    # Chain definitions
    create_chain_definition,
    save_chain,
    get_chain_definition,
    get_chain_definition_by_name,
    list_chain_definitions,
    update_chain_definition,
    delete_chain_definition,
    record_to_chain,
    # Executions
    save_execution,
    get_execution,
    list_executions,
    get_recent_executions,
    delete_execution,
    execution_to_dict,
    get_statistics,
)
from .store import DatabaseChainStore

__all__ = [
    # Models
    "ChainDefinitionRecord",
    "ExecutionRecord",
    "Base",
    # Session
    "get_session",
    "get_engine",
    "configure_database",
    "init_db",
    # Chain CRUD
    "create_chain_definition",
    "save_chain",
    "get_chain_definition",
    "get_chain_definition_by_name",
    "list_chain_definitions",
    "update_chain_definition",
    "delete_chain_definition",
    "record_to_chain",
    # Execution CRUD
    "save_execution",
    "get_execution",
    "list_executions",
    "get_recent_executions",
    "delete_execution",
    "execution_to_dict",
    "get_statistics",
    # Store
    "DatabaseChainStore",
]
