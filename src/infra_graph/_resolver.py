"""
Dependency resolution for declared entity sets.

`resolve` orders a set of entities so that every entity comes after all
entities it references. The order is deterministic: whenever several
entities are ready, the one whose kind comes first in `EntityKind` wins,
and entities of the same kind keep their declaration order.
"""

import heapq
import logging
from typing import Iterable

from infra_graph._entities import Entity
from infra_graph._errors import CycleError, DuplicateNameError, UnresolvedReferenceError
from infra_graph._introspection import references

__all__ = [
    "index_entities",
    "dependency_graph",
    "resolve",
]

logger = logging.getLogger(__name__)


def index_entities(entities: Iterable[Entity]) -> dict[str, Entity]:
    """Map identifiers to entities, keeping declaration order.

    Raises:
        DuplicateNameError: If two entities share an identifier.
    """
    index: dict[str, Entity] = {}
    for entity in entities:
        if entity.id in index:
            raise DuplicateNameError(
                f"identifier already declared by {index[entity.id].kind.value}",
                entity_id=entity.id,
                kind=entity.kind,
            )
        index[entity.id] = entity
    return index


def dependency_graph(entities: Iterable[Entity]) -> dict[str, set[str]]:
    """Map each entity identifier to the identifiers it depends on.

    Every reference is checked against the declared set: it must name a
    declared entity of the kind its field is annotated with. A required
    reference left unset counts as unresolved.

    Raises:
        DuplicateNameError: If two entities share an identifier.
        UnresolvedReferenceError: If any reference does not resolve. All
            dangling references are reported together.
    """
    index = index_entities(entities)
    graph: dict[str, set[str]] = {}
    missing: list[tuple[str, str, str | None]] = []

    for entity_id, entity in index.items():
        deps: set[str] = set()
        for ref in references(entity):
            identifier = ref.identifier
            target = index.get(identifier) if identifier is not None else None
            if identifier is None or not isinstance(target, ref.target):
                missing.append((entity_id, ref.field, identifier))
                continue
            deps.add(identifier)
        graph[entity_id] = deps

    if missing:
        raise UnresolvedReferenceError(missing)
    return graph


def resolve(entities: Iterable[Entity]) -> list[Entity]:
    """Order entities so each one follows everything it references.

    Args:
        entities: The full declaration set.

    Returns:
        The same entities in creation order.

    Raises:
        DuplicateNameError: If two entities share an identifier.
        UnresolvedReferenceError: If a reference names no declared entity
            of the expected kind.
        CycleError: If the references form a cycle.

    Example:
        ::

            order = resolve([listener, vpc, alb, subnets])
            [e.id for e in order]
            # ['default-vpc', 'default-subnets', 'web-alb', 'http']
    """
    entities = list(entities)
    graph = dependency_graph(entities)
    index = {entity.id: entity for entity in entities}
    position = {entity.id: i for i, entity in enumerate(entities)}

    dependents: dict[str, list[str]] = {entity_id: [] for entity_id in graph}
    pending: dict[str, int] = {}
    for entity_id, deps in graph.items():
        pending[entity_id] = len(deps)
        for dep in deps:
            dependents[dep].append(entity_id)

    def priority(entity_id: str) -> tuple[int, int, str]:
        return (index[entity_id].kind.rank, position[entity_id], entity_id)

    ready = [priority(entity_id) for entity_id, count in pending.items() if count == 0]
    heapq.heapify(ready)

    ordered: list[Entity] = []
    while ready:
        *_, entity_id = heapq.heappop(ready)
        ordered.append(index[entity_id])
        for dependent in dependents[entity_id]:
            pending[dependent] -= 1
            if pending[dependent] == 0:
                heapq.heappush(ready, priority(dependent))

    if len(ordered) < len(entities):
        remaining = [entity.id for entity in entities if pending[entity.id] > 0]
        cycle = _find_cycle(graph, remaining)
        logger.debug("Cycle among %d unordered entities: %s", len(remaining), cycle)
        raise CycleError(cycle)

    logger.debug("Resolved %d entities: %s", len(ordered), [e.id for e in ordered])
    return ordered


def _find_cycle(graph: dict[str, set[str]], remaining: list[str]) -> list[str]:
    """Walk dependencies among unordered entities until one repeats.

    Every unordered entity still waits on at least one other unordered
    entity, so the walk cannot stop before revisiting a node.
    """
    blocked = set(remaining)
    path: list[str] = []
    seen: dict[str, int] = {}
    current = remaining[0]
    while current not in seen:
        seen[current] = len(path)
        path.append(current)
        current = min(dep for dep in graph[current] if dep in blocked)
    return path[seen[current]:]
