"""
Entity declarations for a load-balanced compute tier.

Every entity is a frozen, keyword-only dataclass with a logical `id`
and a `kind` drawn from the closed `EntityKind` enumeration. Fields
annotated with `Ref[T]` or `RefList[T]` name other entities; everything
else is plain data, sometimes grouped into small value records
(`SecurityRule`, `HealthCheck`, listener actions).

Example:
    The network side of a web tier::

        vpc = NetworkRef(id="default-vpc", default=True)
        subnets = SubnetSet(
            id="default-subnets",
            network="default-vpc",
            filters=(Filter(name="default-for-az", values=("true",)),),
        )
        alb_sg = SecurityGroup(
            id="alb-sg",
            name="web-alb",
            rules=(
                SecurityRule(direction="ingress", from_port=80, to_port=80),
                SecurityRule(direction="egress", from_port=0, to_port=0,
                             protocol="-1"),
            ),
        )
"""

import enum
from dataclasses import dataclass, field
from typing import ClassVar, Union

from infra_graph._types import Ref, RefList

__all__ = [
    "EntityKind",
    "Entity",
    "NetworkRef",
    "Filter",
    "SubnetSet",
    "SecurityRule",
    "SecurityGroup",
    "ComputeTemplate",
    "HealthCheck",
    "TargetGroup",
    "Tag",
    "ScalingGroup",
    "LoadBalancer",
    "FixedResponse",
    "Forward",
    "ListenerAction",
    "Listener",
    "PathPattern",
    "ListenerRule",
    "ENTITY_TYPES",
]


class EntityKind(enum.Enum):
    """Closed set of entity kinds.

    Member order is the tie-break order used by the resolver: when
    several entities are ready at once, earlier kinds are emitted first.
    """

    NETWORK = "network"
    SUBNET_SET = "subnet_set"
    SECURITY_GROUP = "security_group"
    COMPUTE_TEMPLATE = "compute_template"
    TARGET_GROUP = "target_group"
    LOAD_BALANCER = "load_balancer"
    LISTENER = "listener"
    SCALING_GROUP = "scaling_group"
    LISTENER_RULE = "listener_rule"

    @property
    def rank(self) -> int:
        return _KIND_ORDER.index(self)


_KIND_ORDER = list(EntityKind)


@dataclass(frozen=True, kw_only=True)
class Entity:
    """Base class for declared entities.

    Attributes:
        id: Logical identifier, unique across a declaration set. Reference
            fields of other entities hold this value.
    """

    kind: ClassVar[EntityKind]

    id: str


# -- Network lookups -----------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class NetworkRef(Entity):
    """Lookup of an existing virtual network.

    Either names the network explicitly (`network_id`) or asks for the
    account's default network (`default=True`). Exactly one of the two
    must be given.
    """

    kind: ClassVar[EntityKind] = EntityKind.NETWORK

    network_id: str | None = None
    default: bool = False


@dataclass(frozen=True)
class Filter:
    """Lookup filter: match resources whose attribute `name` is one of `values`."""

    name: str
    values: tuple[str, ...] = ()


@dataclass(frozen=True, kw_only=True)
class SubnetSet(Entity):
    """Subnets of a network selected by filter criteria.

    `subnet_ids` stays None until the provisioning engine resolves the
    filters. Once resolved, it must not be empty.
    """

    kind: ClassVar[EntityKind] = EntityKind.SUBNET_SET

    network: Ref[NetworkRef]
    filters: tuple[Filter, ...] = ()
    subnet_ids: tuple[str, ...] | None = None


# -- Security boundaries -------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class SecurityRule:
    """One inbound or outbound traffic rule.

    A protocol of "-1" means all protocols; the port range is then
    conventionally 0-0.
    """

    direction: str = "ingress"
    from_port: int
    to_port: int
    protocol: str = "tcp"
    cidr_blocks: tuple[str, ...] = ("0.0.0.0/0",)
    description: str = ""


@dataclass(frozen=True, kw_only=True)
class SecurityGroup(Entity):
    """Named set of traffic rules, kept in declaration order."""

    kind: ClassVar[EntityKind] = EntityKind.SECURITY_GROUP

    name: str
    description: str = ""
    rules: tuple[SecurityRule, ...] = ()

    @property
    def ingress(self) -> tuple[SecurityRule, ...]:
        return tuple(rule for rule in self.rules if rule.direction == "ingress")

    @property
    def egress(self) -> tuple[SecurityRule, ...]:
        return tuple(rule for rule in self.rules if rule.direction == "egress")


# -- Compute -------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class ComputeTemplate(Entity):
    """How to launch one compute unit.

    Changing a template replaces it, and the replacement has to exist
    before the old one is destroyed because running scaling groups still
    point at it. `create_before_destroy` therefore has to stay True.
    """

    kind: ClassVar[EntityKind] = EntityKind.COMPUTE_TEMPLATE

    name_prefix: str
    image_id: str
    instance_type: str
    user_data: str = ""
    security_groups: RefList[SecurityGroup] = ()
    create_before_destroy: bool = True


@dataclass(frozen=True, kw_only=True)
class HealthCheck:
    """Target health-check policy. Intervals and timeouts are in seconds."""

    path: str = "/"
    port: str = "traffic-port"
    protocol: str = "HTTP"
    matcher: str = "200"
    interval: int = 30
    timeout: int = 5
    healthy_threshold: int = 5
    unhealthy_threshold: int = 2


@dataclass(frozen=True, kw_only=True)
class TargetGroup(Entity):
    """Pool of compute endpoints a load balancer forwards traffic to."""

    kind: ClassVar[EntityKind] = EntityKind.TARGET_GROUP

    name: str
    port: int
    protocol: str = "HTTP"
    network: Ref[NetworkRef]
    health_check: HealthCheck = field(default_factory=HealthCheck)


@dataclass(frozen=True)
class Tag:
    key: str
    value: str
    propagate_at_launch: bool = True


@dataclass(frozen=True, kw_only=True)
class ScalingGroup(Entity):
    """Managed pool of compute units kept between `min_size` and `max_size`."""

    kind: ClassVar[EntityKind] = EntityKind.SCALING_GROUP

    name: str
    template: Ref[ComputeTemplate]
    subnets: Ref[SubnetSet]
    min_size: int
    max_size: int
    desired_capacity: int | None = None
    target_groups: RefList[TargetGroup] = ()
    health_check_type: str = "ELB"
    health_check_grace_period: int = 300
    tags: tuple[Tag, ...] = ()


# -- Load balancing ------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class LoadBalancer(Entity):
    kind: ClassVar[EntityKind] = EntityKind.LOAD_BALANCER

    name: str
    subnets: Ref[SubnetSet]
    security_groups: RefList[SecurityGroup] = ()
    load_balancer_type: str = "application"
    internal: bool = False


@dataclass(frozen=True, kw_only=True)
class FixedResponse:
    """Listener action answering directly without contacting any target."""

    status_code: int = 404
    content_type: str = "text/plain"
    body: str = "404: page not found"


@dataclass(frozen=True, kw_only=True)
class Forward:
    """Listener action sending traffic to a target group."""

    target_group: Ref[TargetGroup]


ListenerAction = Union[FixedResponse, Forward]


@dataclass(frozen=True, kw_only=True)
class Listener(Entity):
    """Port and protocol a load balancer accepts traffic on.

    A listener has exactly one default action, applied when no rule
    matches.
    """

    kind: ClassVar[EntityKind] = EntityKind.LISTENER

    load_balancer: Ref[LoadBalancer]
    port: int = 80
    protocol: str = "HTTP"
    default_action: ListenerAction = field(default_factory=FixedResponse)


@dataclass(frozen=True)
class PathPattern:
    values: tuple[str, ...] = ("*",)


@dataclass(frozen=True, kw_only=True)
class ListenerRule(Entity):
    """Path-based routing rule forwarding matching requests to a target group."""

    kind: ClassVar[EntityKind] = EntityKind.LISTENER_RULE

    listener: Ref[Listener]
    priority: int
    condition: PathPattern = field(default_factory=PathPattern)
    target_group: Ref[TargetGroup]


ENTITY_TYPES: dict[EntityKind, type[Entity]] = {
    cls.kind: cls
    for cls in (
        NetworkRef,
        SubnetSet,
        SecurityGroup,
        ComputeTemplate,
        TargetGroup,
        LoadBalancer,
        Listener,
        ScalingGroup,
        ListenerRule,
    )
}
"""Entity class for every kind."""
