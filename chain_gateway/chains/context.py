"""
Execution Context

Immutable snapshot of the state threaded through one chain run, and the
dotted field path resolution shared by conditions and templates.
"""

import re
from dataclasses import dataclass, field, replace
from functools import cached_property
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .models import ChainId, StepResult


class _Missing:
    """Sentinel for a path that does not resolve"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "MISSING"


MISSING = _Missing()

_SEGMENT = re.compile(r"^([^\[\]]*)((?:\[\d+\])*)$")
_INDEX = re.compile(r"\[(\d+)\]")


def _parse_path(path: str) -> Optional[List[Union[str, int]]]:
    """
    Split a dotted path into keys and list indexes

    Example:
        >>> _parse_path("step_2.response.characters[0].name")
        ['step_2', 'response', 'characters', 0, 'name']
    """
    if not isinstance(path, str) or not path.strip():
        return None

    parts: List[Union[str, int]] = []
    for segment in path.strip().split("."):
        match = _SEGMENT.match(segment)
        if not match:
            return None
        name, indexes = match.groups()
        if name:
            parts.append(name)
        elif not indexes:
            return None
        parts.extend(int(i) for i in _INDEX.findall(indexes))
    return parts


def resolve_path(namespace: Mapping[str, Any], path: str) -> Any:
    """
    Resolve a dotted field path against a namespace

    Args:
        namespace: Mapping of context roots (input, env, context, step ids)
        path: Path such as "input.user.name" or "step_1.response.items[0]"

    Returns:
        The resolved value, or MISSING when any segment cannot be followed
    """
    parts = _parse_path(path)
    if parts is None:
        return MISSING

    current: Any = namespace
    for part in parts:
        if isinstance(current, Mapping):
            key = part if isinstance(part, str) else str(part)
            if key not in current:
                return MISSING
            current = current[key]
        elif isinstance(current, (list, tuple)):
            if isinstance(part, str):
                if not part.isdigit():
                    return MISSING
                part = int(part)
            if part >= len(current):
                return MISSING
            current = current[part]
        else:
            return MISSING
    return current


@dataclass(frozen=True)
class ExecutionContext:
    """
    State of one chain run at a point in time

    Each recorded step produces a new snapshot through with_result(); nested
    runs get their own context and keep the invoking context only as `parent`,
    which is never consulted for field lookup.

    Attributes:
        input: Input supplied to this run
        env: Environment map supplied by the caller
        user_id: Invoking user
        chain_id: Chain being executed
        depth: Recursion depth (0 for top-level runs)
        results: Latest StepResult per step ID
        version: Number of results recorded so far
        parent: Context of the invoking chain (diagnostics only)
    """
    input: Mapping[str, Any] = field(default_factory=dict)
    env: Mapping[str, Any] = field(default_factory=dict)
    user_id: Optional[str] = None
    chain_id: Optional[ChainId] = None
    depth: int = 0
    results: Mapping[str, StepResult] = field(default_factory=lambda: MappingProxyType({}))
    version: int = 0
    parent: Optional["ExecutionContext"] = field(default=None, repr=False, compare=False)

    def with_result(self, result: StepResult) -> "ExecutionContext":
        """Return a new snapshot with the step's result recorded"""
        results = dict(self.results)
        results[result.step_id] = result
        return replace(
            self,
            results=MappingProxyType(results),
            version=self.version + 1,
        )

    def child(
        self,
        input: Mapping[str, Any],
        chain_id: Optional[ChainId]
    ) -> "ExecutionContext":
        """Fresh context for a nested run invoked from this one"""
        return ExecutionContext(
            input=input,
            env=self.env,
            user_id=self.user_id,
            chain_id=chain_id,
            depth=self.depth + 1,
            parent=self,
        )

    @cached_property
    def namespace(self) -> Dict[str, Any]:
        """Lookup namespace for conditions and templates"""
        namespace: Dict[str, Any] = {
            step_id: result.model_dump(mode="json")
            for step_id, result in self.results.items()
        }
        namespace["input"] = dict(self.input)
        namespace["env"] = dict(self.env)
        namespace["context"] = {
            "user_id": self.user_id,
            "chain_id": self.chain_id,
            "depth": self.depth,
        }
        return namespace

    def resolve(self, path: str) -> Any:
        """Resolve a field path against this snapshot (MISSING when absent)"""
        return resolve_path(self.namespace, path)

    def lineage(self) -> Tuple[Optional[ChainId], ...]:
        """Chain IDs from the top-level run down to this one"""
        chain_ids = []
        current: Optional[ExecutionContext] = self
        while current is not None:
            chain_ids.append(current.chain_id)
            current = current.parent
        return tuple(reversed(chain_ids))
