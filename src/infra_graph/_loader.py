"""
Declaration documents: reading entity sets from YAML and writing emissions back.

A declaration document is a mapping with a ``resources`` list. Each item
names its ``kind`` (an `EntityKind` value) and gives the entity's fields;
value records are written as nested mappings::

    resources:
      - kind: network
        id: default-vpc
        default: true
      - kind: subnet_set
        id: default-subnets
        network: default-vpc
        filters:
          default-for-az: ["true"]
      - kind: listener
        id: http
        load_balancer: web-alb
        default_action:
          type: fixed-response
          status_code: 404

JSON documents are valid YAML and load the same way.
"""

import dataclasses
import logging
import types
from pathlib import Path
from typing import Any, Callable, IO, Mapping, Union, get_args, get_origin, get_type_hints

import yaml

from infra_graph._emit import Emission
from infra_graph._entities import (
    ENTITY_TYPES,
    Entity,
    EntityKind,
    Filter,
    FixedResponse,
    Forward,
    HealthCheck,
    PathPattern,
    SecurityRule,
    Tag,
)
from infra_graph._errors import DeclarationError
from infra_graph._introspection import RefInfo, get_refs

__all__ = [
    "load_declarations",
    "parse_declarations",
    "dump_document",
]

logger = logging.getLogger(__name__)


def load_declarations(path: str | Path) -> list[Entity]:
    """Load entities from a YAML or JSON declaration file.

    Args:
        path: Path to the declaration document.

    Returns:
        Entities in declaration order.

    Raises:
        DeclarationError: If the file is missing, is not valid YAML, or
            does not describe valid entities.
    """
    path = Path(path)
    if not path.exists():
        raise DeclarationError(f"Declaration file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise DeclarationError(f"Invalid YAML in {path}: {e}") from e

    entities = parse_declarations(data, source=str(path))
    logger.debug("Loaded %d entities from %s", len(entities), path)
    return entities


def parse_declarations(data: Any, source: str = "<data>") -> list[Entity]:
    """Build entities from an already parsed declaration document.

    Args:
        data: The parsed document, a mapping with a ``resources`` list.
        source: Name used in error messages.

    Returns:
        Entities in declaration order.

    Raises:
        DeclarationError: On any structural problem, naming `source` and
            the index of the offending item.
    """
    if not isinstance(data, Mapping) or "resources" not in data:
        raise DeclarationError(f"{source}: expected a mapping with a 'resources' list")
    resources = data["resources"]
    if not isinstance(resources, list):
        raise DeclarationError(f"{source}: 'resources' must be a list")

    entities = []
    for index, item in enumerate(resources):
        where = f"{source}: resources[{index}]"
        entities.append(_parse_entity(item, where))
    return entities


def dump_document(emission: Emission, stream: IO[str] | None = None) -> str | None:
    """Write an emission as a YAML declaration document.

    The output loads back through `load_declarations` into the same
    entities, in creation order.

    Args:
        emission: The emission to render.
        stream: Where to write. If None, the YAML text is returned.
    """
    return yaml.safe_dump(emission.to_document(), stream, sort_keys=False)


def _parse_entity(item: Any, where: str) -> Entity:
    if not isinstance(item, Mapping):
        raise DeclarationError(f"{where}: expected a mapping, got {type(item).__name__}")
    raw_kind = item.get("kind")
    try:
        kind = EntityKind(raw_kind)
    except ValueError:
        valid = ", ".join(k.value for k in EntityKind)
        raise DeclarationError(f"{where}: unknown kind {raw_kind!r}. Valid kinds: {valid}") from None

    cls = ENTITY_TYPES[kind]
    fields = {k: v for k, v in item.items() if k != "kind"}
    where = f"{where} ({kind.value} {fields.get('id', '?')})"
    converters = _FIELD_CONVERTERS.get(kind, {})
    return _build(cls, fields, where, converters)


def _build(
    cls: type,
    data: Mapping[str, Any],
    where: str,
    converters: Mapping[str, Callable[[Any, str], Any]] | None = None,
) -> Any:
    """Instantiate dataclass `cls` from `data`, rejecting unknown keys."""
    known = {f.name for f in dataclasses.fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise DeclarationError(f"{where}: unknown field(s) {', '.join(unknown)}")

    hints = get_type_hints(cls)
    refs = get_refs(cls)
    kwargs = {}
    for key, value in data.items():
        _check_value(value, hints[key], refs.get(key), f"{where}.{key}")
        convert = (converters or {}).get(key)
        kwargs[key] = convert(value, f"{where}.{key}") if convert else _tuples(value)
    try:
        return cls(**kwargs)
    except TypeError as e:
        raise DeclarationError(f"{where}: {e}") from e


_SCALARS = (int, str, bool)


def _check_value(value: Any, hint: Any, ref: RefInfo | None, where: str) -> None:
    """Reject scalars and references of the wrong type before construction.

    References must be identifiers; a `RefList` must be a list of them.
    None is accepted only where the annotation allows it.
    """
    expected, optional = _unwrap_optional(hint)
    if value is None and optional:
        return
    if ref is not None and ref.is_list:
        for index, item in enumerate(_sequence(value, where)):
            _expect(str, item, f"{where}[{index}]")
    elif ref is not None:
        _expect(str, value, where)
    elif expected in _SCALARS:
        _expect(expected, value, where)


def _unwrap_optional(hint: Any) -> tuple[Any, bool]:
    if get_origin(hint) in (Union, types.UnionType):
        args = get_args(hint)
        non_none = [arg for arg in args if arg is not type(None)]
        if len(non_none) == 1:
            return non_none[0], len(non_none) < len(args)
    return hint, False


def _expect(expected: type, value: Any, where: str) -> None:
    # bool is a subclass of int, but `true` is not a port or a size
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        raise DeclarationError(
            f"{where}: expected {expected.__name__}, got {type(value).__name__}"
        )


def _tuples(value: Any) -> Any:
    """Turn YAML lists into tuples so declared entities stay immutable."""
    if isinstance(value, list):
        return tuple(_tuples(item) for item in value)
    return value


def _mapping(value: Any, where: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise DeclarationError(f"{where}: expected a mapping, got {type(value).__name__}")
    return value


def _sequence(value: Any, where: str) -> list[Any]:
    if not isinstance(value, list):
        raise DeclarationError(f"{where}: expected a list, got {type(value).__name__}")
    return value


def _rules(value: Any, where: str) -> tuple[SecurityRule, ...]:
    return tuple(
        _build(SecurityRule, _mapping(rule, f"{where}[{i}]"), f"{where}[{i}]")
        for i, rule in enumerate(_sequence(value, where))
    )


def _filters(value: Any, where: str) -> tuple[Filter, ...]:
    # Either {name: [values]} or [{name: ..., values: [...]}]
    if isinstance(value, Mapping):
        return tuple(Filter(name=str(name), values=_strings(values)) for name, values in value.items())
    return tuple(
        _build(Filter, _mapping(f, f"{where}[{i}]"), f"{where}[{i}]")
        for i, f in enumerate(_sequence(value, where))
    )


def _strings(values: Any) -> tuple[str, ...]:
    if isinstance(values, list):
        return tuple(str(v) for v in values)
    return (str(values),)


def _health_check(value: Any, where: str) -> HealthCheck:
    data = dict(_mapping(value, where))
    if "port" in data:
        data["port"] = str(data["port"])
    health: HealthCheck = _build(HealthCheck, data, where)
    return health


def _tags(value: Any, where: str) -> tuple[Tag, ...]:
    # Either {key: value} or [{key: ..., value: ..., propagate_at_launch: ...}]
    if isinstance(value, Mapping):
        return tuple(Tag(key=str(k), value=str(v)) for k, v in value.items())
    return tuple(
        _build(Tag, _mapping(tag, f"{where}[{i}]"), f"{where}[{i}]")
        for i, tag in enumerate(_sequence(value, where))
    )


_ACTIONS: dict[str, type] = {"fixed-response": FixedResponse, "forward": Forward}


def _action(value: Any, where: str) -> FixedResponse | Forward:
    if isinstance(value, list):
        raise DeclarationError(f"{where}: a listener takes exactly one default action")
    data = dict(_mapping(value, where))
    action_type = data.pop("type", None)
    cls = _ACTIONS.get(action_type) if isinstance(action_type, str) else None
    if cls is None:
        raise DeclarationError(
            f"{where}: action type must be one of {', '.join(_ACTIONS)}, got {action_type!r}"
        )
    action: FixedResponse | Forward = _build(cls, data, where)
    return action


def _condition(value: Any, where: str) -> PathPattern:
    data = _mapping(value, where)
    patterns = data.get("path_pattern", data.get("values"))
    if patterns is None or set(data) - {"path_pattern", "values"}:
        raise DeclarationError(f"{where}: expected a path_pattern list")
    return PathPattern(values=_strings(patterns))


_FIELD_CONVERTERS: dict[EntityKind, dict[str, Callable[[Any, str], Any]]] = {
    EntityKind.SUBNET_SET: {"filters": _filters},
    EntityKind.SECURITY_GROUP: {"rules": _rules},
    EntityKind.TARGET_GROUP: {"health_check": _health_check},
    EntityKind.SCALING_GROUP: {"tags": _tags},
    EntityKind.LISTENER: {"default_action": _action},
    EntityKind.LISTENER_RULE: {"condition": _condition},
}
