"""
Database-backed chain store
"""

import logging
from typing import List, Optional

from chain_gateway.chains.errors import ChainNotFoundError
from chain_gateway.chains.models import ChainConfiguration, ChainId
from chain_gateway.chains.store import ChainStore

from .crud import (
    get_chain_definition,
    get_chain_definition_by_name,
    list_chain_definitions,
    record_to_chain,
)
from .session import get_session

logger = logging.getLogger(__name__)


class DatabaseChainStore(ChainStore):
    """
    Reads chains from the chain_configurations table

    Numeric identifiers are looked up by primary key, anything else by name.
    """

    async def get_chain(self, chain_id: ChainId) -> ChainConfiguration:
        key = str(chain_id).strip()
        with get_session() as session:
            record = None
            if key.isdigit():
                record = get_chain_definition(session, int(key))
            if record is None:
                record = get_chain_definition_by_name(session, key)
            if record is None:
                raise ChainNotFoundError(chain_id)
            return record_to_chain(record)

    async def list_chains(self, user_id: Optional[str] = None) -> List[ChainConfiguration]:
        with get_session() as session:
            return [record_to_chain(record) for record in list_chain_definitions(session, user_id=user_id)]
