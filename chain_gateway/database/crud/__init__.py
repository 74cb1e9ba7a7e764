"""
CRUD operations module

Imports all CRUD functions from individual entity files
"""

from .chain import (
    create_chain_definition,
    save_chain,
    get_chain_definition,
    get_chain_definition_by_name,
    list_chain_definitions,
    update_chain_definition,
    delete_chain_definition,
    record_to_chain,
)

from .execution import (
    save_execution,
    get_execution,
    list_executions,
    get_recent_executions,
    delete_execution,
    execution_to_dict,
    get_statistics,
)

__all__ = [
    # Chain definitions
    "create_chain_definition",
    "save_chain",
    "get_chain_definition",
    "get_chain_definition_by_name",
    "list_chain_definitions",
    "update_chain_definition",
    "delete_chain_definition",
    "record_to_chain",
    # Executions
    "save_execution",
    "get_execution",
    "list_executions",
    "get_recent_executions",
    "delete_execution",
    "execution_to_dict",
    "get_statistics",
]
