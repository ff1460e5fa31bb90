"""
Introspection over reference fields.

Type level:

- `get_refs`: find the `Ref` / `RefList` fields declared on a class
- `get_dependencies`: the entity classes a class can depend on

Instance level:

- `references`: the identifiers a declared entity actually points at,
  including those nested in value records such as a listener's default
  action

Example:
    Inspecting a scaling group::

        from infra_graph import ScalingGroup, get_refs, get_dependencies

        refs = get_refs(ScalingGroup)
        refs["target_groups"].is_list          # True
        get_dependencies(ScalingGroup)         # {ComputeTemplate, SubnetSet, TargetGroup}
"""

import dataclasses
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Iterator, Union, get_args, get_origin, get_type_hints

from infra_graph._entities import Entity
from infra_graph._types import Ref, RefList

__all__ = [
    "RefInfo",
    "Reference",
    "get_refs",
    "get_dependencies",
    "references",
    "identifier_of",
]


@dataclass(frozen=True)
class RefInfo:
    """Metadata about a reference field.

    Attributes:
        field: The name of the field containing the reference.
        target: The referenced entity class.
        is_list: True if the field is a `RefList`.
        is_optional: True if the reference may be None (`Ref[T] | None`).
    """

    field: str
    target: type
    is_list: bool = False
    is_optional: bool = False


@dataclass(frozen=True)
class Reference:
    """One concrete reference held by a declared entity.

    Attributes:
        field: Dotted path of the field holding the reference, e.g.
            ``"default_action.target_group"``.
        target: The entity class the reference must resolve to.
        identifier: The referenced entity's identifier, or None when a
            required reference was left unset.
    """

    field: str
    target: type
    identifier: str | None


def get_refs(cls: type) -> dict[str, RefInfo]:
    """Extract reference information from a class.

    Analyzes the type hints of `cls`, including inherited ones, and
    returns a `RefInfo` for every field annotated with `Ref[T]`,
    `RefList[T]`, or either of them combined with None.

    Args:
        cls: The class to analyze, usually an entity or value record.

    Returns:
        A dictionary mapping field names to `RefInfo` objects. Fields
        without reference types are not included.

    Raises:
        NameError: If an annotation names a class that cannot be found.
    """
    return dict(_get_refs_cached(cls))


@lru_cache(maxsize=None)
def _get_refs_cached(cls: type) -> tuple[tuple[str, RefInfo], ...]:
    hints = get_type_hints(cls)
    refs = []
    for name, hint in hints.items():
        info = _analyze_type(name, hint)
        if info is not None:
            refs.append((name, info))
    return tuple(refs)


def _get_origin(hint: Any) -> Any:
    """Get the origin of a type hint, including our own generic aliases."""
    origin = get_origin(hint)
    if origin is not None:
        return origin
    return getattr(hint, "__origin__", None)


def _get_args(hint: Any) -> tuple[Any, ...]:
    """Get the type arguments of a type hint, including our own generic aliases."""
    args = get_args(hint)
    if args:
        return args
    result: tuple[Any, ...] = getattr(hint, "__args__", ())
    return result


def _analyze_type(field: str, hint: Any) -> RefInfo | None:
    """Return a `RefInfo` if `hint` is a reference annotation, else None."""
    origin = _get_origin(hint)
    args = _get_args(hint)

    if origin is Union:
        non_none_args = [a for a in args if a is not type(None)]
        if len(non_none_args) == 1:
            inner = _analyze_type(field, non_none_args[0])
            if inner is not None:
                return dataclasses.replace(inner, is_optional=True)
        return None

    if origin is Ref and args:
        return RefInfo(field=field, target=args[0])

    if origin is RefList and args:
        return RefInfo(field=field, target=args[0], is_list=True)

    return None


def get_dependencies(cls: type, transitive: bool = False) -> set[type]:
    """Compute the entity classes that `cls` may depend on.

    Only reference fields declared directly on `cls` (or inherited) are
    followed; references nested inside value records are visible through
    `references` on instances.

    Args:
        cls: The class to analyze.
        transitive: If True, include dependencies of dependencies.

    Returns:
        A set of entity classes.

    Example:
        ::

            get_dependencies(ListenerRule)
            # {Listener, TargetGroup}

            get_dependencies(ListenerRule, transitive=True)
            # {Listener, LoadBalancer, SubnetSet, NetworkRef,
            #  SecurityGroup, TargetGroup}
    """
    deps = {info.target for info in get_refs(cls).values()}

    if not transitive:
        return deps

    visited: set[type] = set()
    to_visit = list(deps)

    while to_visit:
        current = to_visit.pop()
        if current in visited:
            continue
        visited.add(current)
        to_visit.extend(get_dependencies(current) - visited)

    return visited


def references(obj: Any) -> Iterator[Reference]:
    """Yield every reference held by a declared entity.

    Reference values may be identifiers or the referenced entities
    themselves; both are reported by identifier. None values of optional
    references are skipped; a required reference left as None is
    reported with identifier None. Dataclass values that are not themselves
    entities (value records) are searched recursively, as are tuples of
    them.

    Args:
        obj: An entity or value record instance.

    Yields:
        `Reference` objects in field declaration order.
    """
    yield from _references(obj, prefix="")


def _references(obj: Any, prefix: str) -> Iterator[Reference]:
    refs = get_refs(type(obj))
    for f in dataclasses.fields(obj):
        value = getattr(obj, f.name)
        path = f"{prefix}{f.name}"
        info = refs.get(f.name)
        if info is not None:
            if value is None:
                if not info.is_optional:
                    yield Reference(field=path, target=info.target, identifier=None)
                continue
            values = value if info.is_list else (value,)
            for item in values:
                yield Reference(field=path, target=info.target, identifier=identifier_of(item))
        elif _is_record(value):
            yield from _references(value, prefix=f"{path}.")
        elif isinstance(value, tuple):
            for index, item in enumerate(value):
                if _is_record(item):
                    yield from _references(item, prefix=f"{path}[{index}].")


def _is_record(value: Any) -> bool:
    return (
        dataclasses.is_dataclass(value)
        and not isinstance(value, type)
        and not isinstance(value, Entity)
    )


def identifier_of(value: Any) -> str:
    """Normalize a reference value (identifier or entity) to an identifier.

    Raises:
        TypeError: If the value is neither a string nor an entity.
    """
    if isinstance(value, str):
        return value
    identifier = getattr(value, "id", None)
    if isinstance(identifier, str):
        return identifier
    raise TypeError(f"Reference value must be an identifier or an entity, got {value!r}")
