"""
Constraint validation for declared entity sets.

`validate` runs every check over every entity and returns all
violations instead of stopping at the first, so a declaration author
sees each problem in one pass. `check` does the same but raises
`ValidationFailed` when anything was found.

Checks are registered per entity kind in `_ENTITY_CHECKS`; checks that
span several entities (identifier, name and priority uniqueness) run
afterwards.
"""

import logging
from collections import defaultdict
from typing import Any, Callable, Iterable, Iterator

from infra_graph._entities import (
    ComputeTemplate,
    Entity,
    EntityKind,
    HealthCheck,
    Listener,
    ListenerRule,
    NetworkRef,
    ScalingGroup,
    SecurityGroup,
    SecurityRule,
    SubnetSet,
    TargetGroup,
)
from infra_graph._errors import (
    ConstraintError,
    DuplicateNameError,
    DuplicatePriorityError,
    InvalidHealthCheckError,
    InvalidNetworkError,
    InvalidPortError,
    InvalidProtocolError,
    InvalidRangeError,
    LifecycleError,
    ValidationFailed,
)
from infra_graph._introspection import identifier_of

__all__ = [
    "MIN_PORT",
    "MAX_PORT",
    "RULE_PROTOCOLS",
    "RULE_DIRECTIONS",
    "MIN_RULE_PRIORITY",
    "MAX_RULE_PRIORITY",
    "MIN_HEALTH_THRESHOLD",
    "validate",
    "check",
]

logger = logging.getLogger(__name__)

MIN_PORT = 0
MAX_PORT = 65535
RULE_PROTOCOLS = frozenset({"tcp", "udp", "-1"})
RULE_DIRECTIONS = frozenset({"ingress", "egress"})
MIN_RULE_PRIORITY = 1
MAX_RULE_PRIORITY = 50000
MIN_HEALTH_THRESHOLD = 2

# Kinds whose `name` must be unique among entities of the same kind.
_NAMED_KINDS = (
    EntityKind.SECURITY_GROUP,
    EntityKind.TARGET_GROUP,
    EntityKind.LOAD_BALANCER,
)

_Check = Callable[[Any], Iterator[ConstraintError]]


def validate(entities: Iterable[Entity]) -> list[ConstraintError]:
    """Return every constraint violation in the entity set.

    Args:
        entities: The full declaration set.

    Returns:
        A list of `ConstraintError` instances, empty when the set is
        valid. Per-entity violations come first in declaration order,
        followed by uniqueness violations.
    """
    entities = list(entities)
    errors: list[ConstraintError] = []
    for entity in entities:
        entity_check = _ENTITY_CHECKS.get(entity.kind)
        if entity_check is not None:
            errors.extend(entity_check(entity))
    errors.extend(_check_unique_ids(entities))
    errors.extend(_check_unique_names(entities))
    errors.extend(_check_unique_priorities(entities))

    if errors:
        logger.info("Found %d constraint errors in %d entities", len(errors), len(entities))
    else:
        logger.debug("All %d entities satisfy their constraints", len(entities))
    return errors


def check(entities: Iterable[Entity]) -> None:
    """Validate the entity set, raising if anything is wrong.

    Raises:
        ValidationFailed: Carrying every violation found.
    """
    errors = validate(entities)
    if errors:
        raise ValidationFailed(errors)


# -- Per-entity checks ---------------------------------------------------------


def _check_network(entity: NetworkRef) -> Iterator[ConstraintError]:
    if entity.default == (entity.network_id is not None):
        yield InvalidNetworkError(
            "exactly one of network_id and default must be set",
            entity_id=entity.id,
            kind=entity.kind,
        )


def _check_subnet_set(entity: SubnetSet) -> Iterator[ConstraintError]:
    if not entity.filters:
        yield InvalidNetworkError(
            "at least one filter is required",
            entity_id=entity.id,
            kind=entity.kind,
        )
    for lookup in entity.filters:
        if not lookup.values:
            yield InvalidNetworkError(
                f"filter {lookup.name!r} has no values",
                entity_id=entity.id,
                kind=entity.kind,
            )
    if entity.subnet_ids is not None and not entity.subnet_ids:
        yield InvalidNetworkError(
            "filters resolved to no subnets",
            entity_id=entity.id,
            kind=entity.kind,
        )


def _check_security_group(entity: SecurityGroup) -> Iterator[ConstraintError]:
    for number, rule in enumerate(entity.rules, start=1):
        yield from _check_rule(entity, number, rule)


def _check_rule(group: SecurityGroup, number: int, rule: SecurityRule) -> Iterator[ConstraintError]:
    where = f"rule {number} ({rule.direction})"
    if rule.direction not in RULE_DIRECTIONS:
        yield InvalidRangeError(
            f"{where}: direction must be ingress or egress",
            entity_id=group.id,
            kind=group.kind,
        )
    if rule.protocol not in RULE_PROTOCOLS:
        yield InvalidProtocolError(
            f"{where}: protocol {rule.protocol!r} is not one of tcp, udp, -1",
            entity_id=group.id,
            kind=group.kind,
        )
    for port in (rule.from_port, rule.to_port):
        if not MIN_PORT <= port <= MAX_PORT:
            yield InvalidPortError(
                f"{where}: port {port} outside {MIN_PORT}-{MAX_PORT}",
                entity_id=group.id,
                kind=group.kind,
            )
    if rule.from_port > rule.to_port:
        yield InvalidPortError(
            f"{where}: from_port {rule.from_port} exceeds to_port {rule.to_port}",
            entity_id=group.id,
            kind=group.kind,
        )


def _check_compute_template(entity: ComputeTemplate) -> Iterator[ConstraintError]:
    if not entity.create_before_destroy:
        yield LifecycleError(
            "replacement must be created before the template is destroyed",
            entity_id=entity.id,
            kind=entity.kind,
        )


def _check_scaling_group(entity: ScalingGroup) -> Iterator[ConstraintError]:
    if entity.min_size < 0:
        yield InvalidRangeError(
            f"min_size {entity.min_size} is negative",
            entity_id=entity.id,
            kind=entity.kind,
        )
    if entity.min_size > entity.max_size:
        yield InvalidRangeError(
            f"min_size {entity.min_size} exceeds max_size {entity.max_size}",
            entity_id=entity.id,
            kind=entity.kind,
        )
    desired = entity.desired_capacity
    if desired is not None and not entity.min_size <= desired <= entity.max_size:
        yield InvalidRangeError(
            f"desired_capacity {desired} outside {entity.min_size}-{entity.max_size}",
            entity_id=entity.id,
            kind=entity.kind,
        )
    if entity.health_check_grace_period < 0:
        yield InvalidRangeError(
            "health_check_grace_period is negative",
            entity_id=entity.id,
            kind=entity.kind,
        )


def _check_listener(entity: Listener) -> Iterator[ConstraintError]:
    if not 1 <= entity.port <= MAX_PORT:
        yield InvalidPortError(
            f"port {entity.port} outside 1-{MAX_PORT}",
            entity_id=entity.id,
            kind=entity.kind,
        )


def _check_target_group(entity: TargetGroup) -> Iterator[ConstraintError]:
    if not 1 <= entity.port <= MAX_PORT:
        yield InvalidPortError(
            f"port {entity.port} outside 1-{MAX_PORT}",
            entity_id=entity.id,
            kind=entity.kind,
        )
    yield from _check_health_check(entity, entity.health_check)


def _check_health_check(group: TargetGroup, health: HealthCheck) -> Iterator[ConstraintError]:
    if health.timeout >= health.interval:
        yield InvalidHealthCheckError(
            f"health check timeout {health.timeout}s must be below interval {health.interval}s",
            entity_id=group.id,
            kind=group.kind,
        )
    for name in ("healthy_threshold", "unhealthy_threshold"):
        value = getattr(health, name)
        if value < MIN_HEALTH_THRESHOLD:
            yield InvalidHealthCheckError(
                f"health check {name} {value} is below {MIN_HEALTH_THRESHOLD}",
                entity_id=group.id,
                kind=group.kind,
            )
    if health.port != "traffic-port":
        if not health.port.isdigit() or not 1 <= int(health.port) <= MAX_PORT:
            yield InvalidPortError(
                f"health check port {health.port!r} is neither traffic-port nor 1-{MAX_PORT}",
                entity_id=group.id,
                kind=group.kind,
            )


def _check_listener_rule(entity: ListenerRule) -> Iterator[ConstraintError]:
    if not MIN_RULE_PRIORITY <= entity.priority <= MAX_RULE_PRIORITY:
        yield InvalidRangeError(
            f"priority {entity.priority} outside {MIN_RULE_PRIORITY}-{MAX_RULE_PRIORITY}",
            entity_id=entity.id,
            kind=entity.kind,
        )


_ENTITY_CHECKS: dict[EntityKind, _Check] = {
    EntityKind.NETWORK: _check_network,
    EntityKind.SUBNET_SET: _check_subnet_set,
    EntityKind.SECURITY_GROUP: _check_security_group,
    EntityKind.COMPUTE_TEMPLATE: _check_compute_template,
    EntityKind.SCALING_GROUP: _check_scaling_group,
    EntityKind.LISTENER: _check_listener,
    EntityKind.TARGET_GROUP: _check_target_group,
    EntityKind.LISTENER_RULE: _check_listener_rule,
}


# -- Set-wide checks -----------------------------------------------------------


def _check_unique_ids(entities: list[Entity]) -> Iterator[ConstraintError]:
    first: dict[str, Entity] = {}
    for entity in entities:
        if entity.id not in first:
            first[entity.id] = entity
            continue
        yield DuplicateNameError(
            f"identifier already declared by {first[entity.id].kind.value}",
            entity_id=entity.id,
            kind=entity.kind,
        )


def _check_unique_names(entities: list[Entity]) -> Iterator[ConstraintError]:
    seen: dict[tuple[EntityKind, str], str] = {}
    for entity in entities:
        if entity.kind not in _NAMED_KINDS:
            continue
        name: str = getattr(entity, "name")
        first = seen.setdefault((entity.kind, name), entity.id)
        if first != entity.id:
            yield DuplicateNameError(
                f"name {name!r} already used by {first}",
                entity_id=entity.id,
                kind=entity.kind,
            )


def _check_unique_priorities(entities: list[Entity]) -> Iterator[ConstraintError]:
    by_listener: dict[str, dict[int, str]] = defaultdict(dict)
    for entity in entities:
        if not isinstance(entity, ListenerRule):
            continue
        # An unset listener is reported by resolution.
        if entity.listener is None:
            continue
        listener_id = identifier_of(entity.listener)
        first = by_listener[listener_id].setdefault(entity.priority, entity.id)
        if first != entity.id:
            yield DuplicatePriorityError(
                f"priority {entity.priority} on listener {listener_id} already used by {first}",
                entity_id=entity.id,
                kind=entity.kind,
            )
