"""
Error taxonomy for declaration loading, resolution and validation.

Resolution errors (`UnresolvedReferenceError`, `CycleError`) are raised
as soon as the graph is known to be unusable. Constraint errors are
collected across the whole entity set and reported together, either as
the list returned by `validate` or wrapped in `ValidationFailed`.
"""

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from infra_graph._entities import EntityKind

__all__ = [
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


class InfraGraphError(Exception):
    """Base exception for all infra-graph errors."""


class DeclarationError(InfraGraphError):
    """Raised when a declaration document cannot be turned into entities.

    Examples:
    - Malformed YAML
    - Unknown entity kind or field
    - Missing required field
    """


class UnresolvedReferenceError(InfraGraphError):
    """Raised when references name identifiers that are not declared.

    A reference to a declared identifier of the wrong kind is reported
    here too, since no entity of the expected kind matches it.

    Attributes:
        missing: One `(entity_id, field, identifier)` triple per dangling
            reference, in declaration order. The identifier is None for
            a required reference that was never set.
    """

    def __init__(self, missing: Sequence[tuple[str, str, str | None]]) -> None:
        self.missing = list(missing)
        lines = [
            f"{entity_id}.{field} -> {identifier!r}"
            for entity_id, field, identifier in self.missing
        ]
        super().__init__("Unresolved references: " + ", ".join(lines))


class CycleError(InfraGraphError):
    """Raised when the reference graph contains a cycle.

    Attributes:
        cycle: Identifiers along one cycle; each depends on the next and
            the last depends on the first.
    """

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = list(cycle)
        path = " -> ".join([*self.cycle, self.cycle[0]]) if self.cycle else ""
        super().__init__(f"Reference cycle: {path}")


class ConstraintError(InfraGraphError):
    """A single schema invariant violated by one entity.

    Attributes:
        message: Human readable description of the violation.
        entity_id: Identifier of the offending entity, if known.
        kind: Kind of the offending entity, if known.
    """

    def __init__(
        self,
        message: str,
        entity_id: str | None = None,
        kind: "EntityKind | None" = None,
    ) -> None:
        self.message = message
        self.entity_id = entity_id
        self.kind = kind
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.entity_id is None:
            return self.message
        if self.kind is None:
            return f"{self.entity_id}: {self.message}"
        return f"{self.kind.value} {self.entity_id}: {self.message}"


class InvalidRangeError(ConstraintError):
    """Size bounds or priorities outside their allowed range."""


class InvalidPortError(ConstraintError):
    """Port outside 0-65535, or a port range whose start exceeds its end."""


class InvalidProtocolError(ConstraintError):
    """Security rule protocol other than tcp, udp or -1."""


class InvalidHealthCheckError(ConstraintError):
    """Health-check timeout not below the interval, or thresholds too low."""


class InvalidNetworkError(ConstraintError):
    """Network lookup that cannot resolve to exactly one network or subnet set."""


class DuplicateNameError(ConstraintError):
    """Identifier or name declared more than once within its scope."""


class DuplicatePriorityError(ConstraintError):
    """Two rules on the same listener share a priority."""


class LifecycleError(ConstraintError):
    """Compute template that would be destroyed before its replacement exists."""


class ValidationFailed(InfraGraphError):
    """Raised by `check` when one or more constraint errors were found.

    Attributes:
        errors: Every `ConstraintError` found, in declaration order.
    """

    def __init__(self, errors: Sequence[ConstraintError]) -> None:
        self.errors = list(errors)
        noun = "error" if len(self.errors) == 1 else "errors"
        details = "\n".join(f"  {error}" for error in self.errors)
        super().__init__(f"{len(self.errors)} validation {noun}:\n{details}")
