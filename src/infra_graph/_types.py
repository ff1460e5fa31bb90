"""
Reference markers for entity declarations.

Entity fields that point at other entities are annotated with one of two
markers so the resolver can discover them from type hints alone:

- `Ref[T]`: the field names exactly one entity of kind T
- `RefList[T]`: the field names an ordered tuple of entities of kind T

At runtime the field holds the referenced entity's identifier, or the
entity instance itself; both resolve to the same identifier.

Example:
    Declaring a subnet lookup that depends on a network::

        from dataclasses import dataclass
        from infra_graph import Ref

        @dataclass(frozen=True, kw_only=True)
        class SubnetSet(Entity):
            network: Ref[NetworkRef]

        subnets = SubnetSet(id="default-subnets", network="default-vpc")
"""

from typing import Any, Generic, TypeVar

__all__ = [
    "Ref",
    "RefList",
]

T = TypeVar("T")


class _RefMeta(type):
    """Metaclass that enables the `Ref[T]` subscript syntax."""

    def __getitem__(cls, item: type[T]) -> Any:
        return _GenericAlias(cls, (item,))


class Ref(Generic[T], metaclass=_RefMeta):
    """A reference to a single entity of kind T.

    `Ref[T]` never has instances. It marks a dataclass field whose value
    is the identifier of another declared entity, which makes the
    declaring entity depend on it: the resolver emits T first.

    Example:
        A listener bound to a load balancer::

            @dataclass(frozen=True, kw_only=True)
            class Listener(Entity):
                load_balancer: Ref[LoadBalancer]
                port: int = 80

            Listener(id="http", load_balancer="web-alb")

    See Also:
        - `RefList`: For several references of the same kind.
        - `get_refs`: For discovering reference fields on a class.
    """

    __slots__ = ()


class _RefListMeta(type):
    """Metaclass that enables the `RefList[T]` subscript syntax."""

    def __getitem__(cls, item: type[T]) -> Any:
        return _GenericAlias(cls, (item,))


class RefList(Generic[T], metaclass=_RefListMeta):
    """An ordered tuple of references to entities of kind T.

    Each element is resolved independently; the declaring entity depends
    on every one of them. An empty tuple declares no dependency.

    Example:
        A load balancer guarded by security groups::

            @dataclass(frozen=True, kw_only=True)
            class LoadBalancer(Entity):
                security_groups: RefList[SecurityGroup] = ()

            LoadBalancer(id="web-alb", security_groups=("alb-sg",))
    """

    __slots__ = ()


class _GenericAlias:
    """Parameterized marker that keeps origin and args for introspection.

    `typing.get_origin` and `typing.get_args` do not understand this class,
    so `infra_graph._introspection` reads `__origin__` and `__args__`
    directly. The `|` operator is supported so `Ref[T] | None` builds a
    regular `typing.Union`.
    """

    __slots__ = ("__origin__", "__args__")

    def __init__(self, origin: type, args: tuple[Any, ...]) -> None:
        self.__origin__ = origin
        self.__args__ = args

    def __repr__(self) -> str:
        args_str = ", ".join(
            arg.__name__ if isinstance(arg, type) else repr(arg)
            for arg in self.__args__
        )
        return f"{self.__origin__.__name__}[{args_str}]"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, _GenericAlias):
            return (
                self.__origin__ == other.__origin__
                and self.__args__ == other.__args__
            )
        return False

    def __hash__(self) -> int:
        return hash((self.__origin__, self.__args__))

    def __or__(self, other: Any) -> Any:
        import typing

        return typing.Union[self, other]

    def __ror__(self, other: Any) -> Any:
        import typing

        return typing.Union[other, self]
