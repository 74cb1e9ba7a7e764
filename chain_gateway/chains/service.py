"""
Chain Service Layer

Provides convenient functions for loading, validating, and inspecting chains.
"""

import logging
from graphlib import CycleError, TopologicalSorter
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Union

import yaml
from pydantic import ValidationError

from .errors import ChainValidationError
from .models import (
    ChainCallStep,
    ChainConfiguration,
    ModuleCallStep,
    RoutingAction,
)

logger = logging.getLogger(__name__)


def load_chain(yaml_path: Union[str, Path]) -> ChainConfiguration:
    """
    Load a chain definition from a YAML file

    Args:
        yaml_path: Path to chain YAML file

    Returns:
        ChainConfiguration object

    Raises:
        ChainValidationError: If chain file is missing or invalid

    Example:
        chain = load_chain("chains/character_context.yaml")
        print(f"Chain: {chain.name}")
        print(f"Steps: {len(chain.steps)}")
    """
    try:
        with open(yaml_path, 'r') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ChainValidationError(f"Invalid YAML in {yaml_path}: {e}")
    except FileNotFoundError:
        raise ChainValidationError(f"Chain file not found: {yaml_path}")

    if not isinstance(data, dict):
        raise ChainValidationError(f"Chain file {yaml_path} must contain a mapping")

    return load_chain_from_dict(data)


def load_chain_from_dict(data: Dict[str, Any]) -> ChainConfiguration:
    """
    Load a chain definition from a dictionary

    Args:
        data: Chain definition as dictionary

    Returns:
        ChainConfiguration object

    Raises:
        ChainValidationError: If chain structure is invalid

    Example:
        chain = load_chain_from_dict({
            "name": "lookup",
            "steps": [
                {"id": "a", "module": "character", "endpoint": "/character/:userId",
                 "params": {"userId": "{{input.userId}}"}}
            ]
        })
    """
    try:
        return ChainConfiguration.model_validate(data)
    except ValidationError as e:
        raise ChainValidationError(f"Invalid chain definition: {e}")


def discover_chains(directory: Union[str, Path]) -> List[Dict[str, Any]]:
    """
    Discover all chain YAML files in a directory

    Args:
        directory: Directory to search for chain files

    Returns:
        List of chain summaries with name, path, and basic info
    """
    directory = Path(directory)

    if not directory.exists():
        return []

    chain_files = sorted(directory.glob("**/*.yaml")) + sorted(directory.glob("**/*.yml"))

    chains = []
    for yaml_file in chain_files:
        try:
            chain = load_chain(yaml_file)
        except ChainValidationError as e:
            logger.warning(f"Skipping invalid chain file {yaml_file}: {e}")
            continue

        summary = get_chain_summary(chain)
        summary["path"] = str(yaml_file)
        chains.append(summary)

    return chains


def chain_references(chain: ChainConfiguration) -> Set[str]:
    """
    Chains this chain can transfer control to

    Includes chain_call targets and jump_to_chain routing targets.
    """
    references = set()
    for step in chain.steps:
        if isinstance(step, ChainCallStep):
            references.add(str(step.chain_id))
        for rule in step.conditional_routing:
            if rule.action is RoutingAction.JUMP_TO_CHAIN and rule.target not in (None, ""):
                references.add(str(rule.target))
    return references


def _chain_keys(chain: ChainConfiguration) -> List[str]:
    keys = [chain.name]
    if chain.id is not None:
        keys.insert(0, str(chain.id))
    return keys


def find_chain_cycles(chains: Iterable[ChainConfiguration]) -> List[List[str]]:
    """
    Find reference cycles between chains

    Chains are identified by ID when they have one, otherwise by name;
    references by name are mapped onto the referenced chain's ID.

    Returns:
        List of cycles, each a list of chain keys whose first and last
        elements are the same (e.g., ["a", "b", "a"])

    Example:
        cycles = find_chain_cycles(store_chains)
        for cycle in cycles:
            print(" -> ".join(cycle))
    """
    chains = list(chains)
    canonical: Dict[str, str] = {}
    for chain in chains:
        keys = _chain_keys(chain)
        for key in keys:
            canonical[key] = keys[0]

    # node -> chains it references (graphlib treats these as predecessors)
    graph: Dict[str, Set[str]] = {}
    for chain in chains:
        node = _chain_keys(chain)[0]
        graph.setdefault(node, set()).update(
            canonical.get(ref, ref) for ref in chain_references(chain)
        )

    cycles = []
    while True:
        try:
            TopologicalSorter(graph).prepare()
            return cycles
        except CycleError as e:
            cycle = list(e.args[1])
            cycles.append(list(reversed(cycle)))
            # Drop one edge of the cycle and look again
            graph[cycle[1]].discard(cycle[0])


def validate_chain(
    chain: Union[ChainConfiguration, Dict[str, Any]],
    known_chains: Optional[Iterable[ChainConfiguration]] = None
) -> Dict[str, Any]:
    """
    Validate a chain definition and return validation results

    The executor does not require this check; reference cycles are reported
    as warnings because they are bounded at runtime.

    Args:
        chain: Chain definition (model or raw dict)
        known_chains: Other chains, used to check references and cycles

    Returns:
        Dict with 'valid' (bool), 'errors' (list) and 'warnings' (list)

    Example:
        result = validate_chain(chain, store_chains)
        if not result['valid']:
            print(f"Errors: {result['errors']}")
    """
    errors: List[str] = []
    warnings: List[str] = []

    if isinstance(chain, dict):
        try:
            chain = load_chain_from_dict(chain)
        except ChainValidationError as e:
            return {"valid": False, "errors": [str(e)], "warnings": []}

    step_ids = {step.id for step in chain.steps}

    for step in chain.steps:
        for i, rule in enumerate(step.conditional_routing):
            label = f"Step '{step.id}' routing rule {i + 1}"
            if rule.action is RoutingAction.SKIP_TO_STEP:
                if rule.target in (None, ""):
                    errors.append(f"{label}: skip_to_step has no target")
                elif str(rule.target) not in step_ids:
                    errors.append(f"{label}: skip_to_step targets unknown step '{rule.target}'")
            elif rule.action is RoutingAction.JUMP_TO_CHAIN and rule.target in (None, ""):
                errors.append(f"{label}: jump_to_chain has no target")

    if known_chains is not None:
        known_chains = list(known_chains)
        known_keys = {key for other in known_chains for key in _chain_keys(other)}
        known_keys.update(_chain_keys(chain))

        for reference in sorted(chain_references(chain)):
            if reference not in known_keys:
                warnings.append(f"References unknown chain '{reference}'")

        own_keys = set(_chain_keys(chain))
        others = [other for other in known_chains if not own_keys & set(_chain_keys(other))]
        for cycle in find_chain_cycles([*others, chain]):
            if own_keys & set(cycle):
                warnings.append(f"Chain reference cycle: {' -> '.join(cycle)}")

    return {"valid": not errors, "errors": errors, "warnings": warnings}


def get_chain_summary(chain: ChainConfiguration) -> Dict[str, Any]:
    """
    Get a human-readable summary of a chain

    Returns:
        Dict with id, name, description, step count, modules used, referenced
        chains and routing rule count
    """
    modules = sorted({step.module for step in chain.steps if isinstance(step, ModuleCallStep)})
    return {
        "id": chain.id,
        "name": chain.name,
        "description": chain.description,
        "user_id": chain.user_id,
        "steps": len(chain.steps),
        "step_ids": [step.id for step in chain.steps],
        "modules": modules,
        "references": sorted(chain_references(chain)),
        "routing_rules": sum(len(step.conditional_routing) for step in chain.steps),
        "has_output_template": chain.output_template is not None,
        "metadata": chain.meta_data,
    }
