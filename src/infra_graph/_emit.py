"""
Emission: the validated, ordered hand-off to a provisioning engine.

`emit` is the one call a caller needs before handing declarations over:
it reports every constraint violation first, then resolves the creation
order, and returns an `Emission` that can render itself as a plain
JSON-compatible document.
"""

import dataclasses
import enum
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Iterator

from infra_graph._entities import Entity, FixedResponse, Forward
from infra_graph._introspection import get_refs, identifier_of
from infra_graph._resolver import resolve
from infra_graph._validator import check

__all__ = [
    "Emission",
    "emit",
    "entity_to_dict",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Emission:
    """Entities in creation order, ready for a provisioning engine.

    Attributes:
        entities: Every declared entity, each after everything it
            references.
    """

    entities: tuple[Entity, ...]

    def __iter__(self) -> Iterator[Entity]:
        return iter(self.entities)

    def __len__(self) -> int:
        return len(self.entities)

    @property
    def order(self) -> list[str]:
        """Identifiers in creation order."""
        return [entity.id for entity in self.entities]

    def to_document(self) -> dict[str, Any]:
        """Render as ``{"resources": [...]}`` with one mapping per entity."""
        return {"resources": [entity_to_dict(entity) for entity in self.entities]}


def emit(entities: Iterable[Entity]) -> Emission:
    """Validate and order a declaration set.

    Args:
        entities: The full declaration set.

    Returns:
        An `Emission` holding the entities in creation order.

    Raises:
        ValidationFailed: If any constraint is violated. Raised before
            ordering is attempted, carrying every violation.
        DuplicateNameError: If two entities share an identifier.
        UnresolvedReferenceError: If a reference does not resolve.
        CycleError: If the references form a cycle.
    """
    entities = list(entities)
    check(entities)
    ordered = resolve(entities)
    logger.info("Emitting %d entities", len(ordered))
    return Emission(entities=tuple(ordered))


def entity_to_dict(entity: Entity) -> dict[str, Any]:
    """Convert an entity into a JSON-compatible mapping.

    The mapping starts with ``kind`` and ``id``; reference fields are
    written as identifiers even when they hold entity instances, and
    listener actions carry a ``type`` tag.
    """
    data: dict[str, Any] = {"kind": entity.kind.value}
    data.update(_record_to_dict(entity))
    return data


_ACTION_TYPES: dict[type, str] = {FixedResponse: "fixed-response", Forward: "forward"}


def _record_to_dict(obj: Any) -> dict[str, Any]:
    refs = get_refs(type(obj))
    data: dict[str, Any] = {}
    action_type = _ACTION_TYPES.get(type(obj))
    if action_type is not None:
        data["type"] = action_type
    for f in dataclasses.fields(obj):
        value = getattr(obj, f.name)
        info = refs.get(f.name)
        if info is not None and value is not None:
            if info.is_list:
                data[f.name] = [identifier_of(item) for item in value]
            else:
                data[f.name] = identifier_of(value)
        else:
            data[f.name] = _plain(value)
    return data


def _plain(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _record_to_dict(value)
    if isinstance(value, (tuple, list)):
        return [_plain(item) for item in value]
    if isinstance(value, enum.Enum):
        return value.value
    return value
