"""
infra-graph: Typed entity graphs for load-balanced compute infrastructure.

This package models a declarative infrastructure topology (network
lookups, security groups, a compute template and scaling group, and a
load balancer with its listener, rules and target group) as an immutable
set of typed entities, and checks that set before it is handed to a
provisioning engine.

Overview:
    Entities are frozen dataclasses. Fields that point at other entities
    are annotated with reference markers:

    - `Ref[T]`: one entity of kind T
    - `RefList[T]`: an ordered tuple of entities of kind T

    Two passes run over a declaration set:

    - `validate(entities)` / `check(entities)`: every schema invariant,
      all violations reported together
    - `resolve(entities)`: a deterministic creation order, failing on
      dangling references or cycles

    `emit(entities)` runs both and returns the ordered `Emission`.

Quick Start:
    Declaring and ordering a small graph::

        from infra_graph import (
            Filter, Listener, LoadBalancer, NetworkRef, SubnetSet, emit,
        )

        entities = [
            Listener(id="http", load_balancer="web-alb"),
            LoadBalancer(id="web-alb", name="web", subnets="default-subnets"),
            NetworkRef(id="default-vpc", default=True),
            SubnetSet(
                id="default-subnets",
                network="default-vpc",
                filters=(Filter(name="default-for-az", values=("true",)),),
            ),
        ]

        emission = emit(entities)
        print(emission.order)
        # ['default-vpc', 'default-subnets', 'web-alb', 'http']

    Loading from a file::

        from infra_graph import emit, load_declarations

        emission = emit(load_declarations("web_tier.yaml"))

    Or from the command line::

        infra-graph check web_tier.yaml
        infra-graph order web_tier.yaml

Errors:
    All errors derive from `InfraGraphError`. `UnresolvedReferenceError`
    and `CycleError` come from resolution; `ConstraintError` subclasses
    come from validation and are wrapped in `ValidationFailed` by
    `check` and `emit`.
"""

from infra_graph._emit import Emission, emit, entity_to_dict
from infra_graph._entities import (
    ENTITY_TYPES,
    ComputeTemplate,
    Entity,
    EntityKind,
    Filter,
    FixedResponse,
    Forward,
    HealthCheck,
    Listener,
    ListenerAction,
    ListenerRule,
    LoadBalancer,
    NetworkRef,
    PathPattern,
    ScalingGroup,
    SecurityGroup,
    SecurityRule,
    SubnetSet,
    Tag,
    TargetGroup,
)
from infra_graph._errors import (
    ConstraintError,
    CycleError,
    DeclarationError,
    DuplicateNameError,
    DuplicatePriorityError,
    InfraGraphError,
    InvalidHealthCheckError,
    InvalidNetworkError,
    InvalidPortError,
    InvalidProtocolError,
    InvalidRangeError,
    LifecycleError,
    UnresolvedReferenceError,
    ValidationFailed,
)
from infra_graph._introspection import (
    Reference,
    RefInfo,
    get_dependencies,
    get_refs,
    identifier_of,
    references,
)
from infra_graph._loader import dump_document, load_declarations, parse_declarations
from infra_graph._resolver import dependency_graph, resolve
from infra_graph._types import Ref, RefList
from infra_graph._validator import check, validate

__all__ = [
    # Reference markers
    "Ref",
    "RefList",
    # Entities
    "EntityKind",
    "Entity",
    "ENTITY_TYPES",
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
    # Introspection
    "RefInfo",
    "Reference",
    "get_refs",
    "get_dependencies",
    "references",
    "identifier_of",
    # Resolution and validation
    "dependency_graph",
    "resolve",
    "validate",
    "check",
    "Emission",
    "emit",
    "entity_to_dict",
    # Declaration files
    "load_declarations",
    "parse_declarations",
    "dump_document",
    # Errors
    "InfraGraphError",
    "DeclarationError",
    "UnresolvedReferenceError",
    "CycleError",
    "ConstraintError",
    "InvalidRangeError",
    "InvalidPortError",
    "InvalidProtocolError",
    "InvalidHealthCheckError",
    "InvalidNetworkError",
    "DuplicateNameError",
    "DuplicatePriorityError",
    "LifecycleError",
    "ValidationFailed",
]

__version__ = "0.1.0"
