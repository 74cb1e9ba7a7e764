"""
Chain Definition Stores

Read-only sources of chain configurations for the executor.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from .errors import ChainNotFoundError, ChainValidationError
from .models import ChainConfiguration, ChainId
from .service import load_chain

logger = logging.getLogger(__name__)


def chain_key(chain_id: ChainId) -> str:
    """Lookup key for a chain ID (ints and numeric strings are equivalent)"""
    return str(chain_id).strip()


class ChainStore(ABC):
    """Source of chain definitions, looked up by ID or name"""

    @abstractmethod
    async def get_chain(self, chain_id: ChainId) -> ChainConfiguration:
        """
        Get a chain definition

        Raises:
            ChainNotFoundError: If no chain has this ID or name
        """

    @abstractmethod
    async def list_chains(self, user_id: Optional[str] = None) -> List[ChainConfiguration]:
        """List chain definitions, optionally filtered by owner"""


class InMemoryChainStore(ChainStore):
    """
    Dictionary-backed store

    Chains are reachable by their ID and by their name.
    """

    def __init__(self, chains: Iterable[ChainConfiguration] = ()):
        self._chains: Dict[str, ChainConfiguration] = {}
        self._by_name: Dict[str, ChainConfiguration] = {}
        for chain in chains:
            self.add(chain)

    def add(self, chain: ChainConfiguration) -> ChainConfiguration:
        """Register a chain (replaces a chain with the same ID or name)"""
        if chain.id is not None:
            self._chains[chain_key(chain.id)] = chain
        self._by_name[chain.name] = chain
        return chain

    async def get_chain(self, chain_id: ChainId) -> ChainConfiguration:
        key = chain_key(chain_id)
        chain = self._chains.get(key) or self._by_name.get(key)
        if chain is None:
            raise ChainNotFoundError(chain_id)
        return chain

    async def list_chains(self, user_id: Optional[str] = None) -> List[ChainConfiguration]:
        chains = list({id(chain): chain for chain in [*self._chains.values(), *self._by_name.values()]}.values())
        if user_id is not None:
            chains = [chain for chain in chains if chain.user_id == user_id]
        return chains


class YamlChainStore(InMemoryChainStore):
    """
    Store backed by a directory of YAML chain files

    Files are read once on construction and again on reload(); invalid files
    are logged and skipped.
    """

    def __init__(self, directory: Union[str, Path]):
        super().__init__()
        self.directory = Path(directory)
        self.reload()

    def reload(self) -> int:
        """Re-read the directory, returning the number of chains loaded"""
        self._chains.clear()
        self._by_name.clear()

        if not self.directory.exists():
            logger.warning(f"Chains directory not found: {self.directory}")
            return 0

        files = sorted(self.directory.glob("**/*.yaml")) + sorted(self.directory.glob("**/*.yml"))
        for path in files:
            try:
                self.add(load_chain(path))
            except ChainValidationError as e:
                logger.warning(f"Skipping invalid chain file {path}: {e}")

        logger.info(f"Loaded {len(self._by_name)} chain(s) from {self.directory}")
        return len(self._by_name)
