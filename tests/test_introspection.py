"""Tests for infra_graph introspection API."""

from dataclasses import FrozenInstanceError, dataclass

import pytest

from infra_graph import (
    ComputeTemplate,
    Forward,
    Listener,
    ListenerRule,
    LoadBalancer,
    NetworkRef,
    Ref,
    RefInfo,
    RefList,
    ScalingGroup,
    SecurityGroup,
    SubnetSet,
    TargetGroup,
    get_dependencies,
    get_refs,
    identifier_of,
    references,
)


class TestGetRefs:
    """Tests for get_refs function."""

    def test_simple_ref(self) -> None:
        """get_refs should detect Ref[T] fields on entities."""
        refs = get_refs(SubnetSet)
        assert set(refs) == {"network"}
        assert refs["network"].target is NetworkRef
        assert refs["network"].is_list is False
        assert refs["network"].is_optional is False

    def test_reflist(self) -> None:
        """get_refs should detect RefList[T] fields."""
        refs = get_refs(LoadBalancer)
        assert refs["security_groups"].target is SecurityGroup
        assert refs["security_groups"].is_list is True
        assert refs["subnets"].is_list is False

    def test_mixed_refs(self) -> None:
        """get_refs should find every reference field of a scaling group."""
        refs = get_refs(ScalingGroup)
        assert set(refs) == {"template", "subnets", "target_groups"}
        assert refs["template"].target is ComputeTemplate
        assert refs["target_groups"].target is TargetGroup

    def test_non_ref_fields_excluded(self) -> None:
        """get_refs should skip plain data fields and the kind class attribute."""
        refs = get_refs(ScalingGroup)
        assert "min_size" not in refs
        assert "id" not in refs
        assert "kind" not in refs

    def test_leaf_entities_have_no_refs(self) -> None:
        """Network lookups and security groups reference nothing."""
        assert get_refs(NetworkRef) == {}
        assert get_refs(SecurityGroup) == {}

    def test_value_record_refs(self) -> None:
        """get_refs should work on value records such as a forward action."""
        refs = get_refs(Forward)
        assert refs["target_group"].target is TargetGroup

    def test_optional_ref(self) -> None:
        """get_refs should mark Ref[T] | None as optional."""

        class Gateway:
            pass

        @dataclass
        class Route:
            gateway: Ref[Gateway] | None = None

        refs = get_refs(Route)
        assert refs["gateway"].target is Gateway
        assert refs["gateway"].is_optional is True

    def test_unresolvable_forward_ref(self) -> None:
        """get_refs should raise NameError for annotations it cannot evaluate."""

        @dataclass
        class Broken:
            ref: "NonExistentClass"  # type: ignore  # noqa: F821

        with pytest.raises(NameError):
            get_refs(Broken)


class TestGetDependencies:
    """Tests for get_dependencies function."""

    def test_direct_dependencies(self) -> None:
        """get_dependencies should return direct dependencies."""
        assert get_dependencies(ListenerRule) == {Listener, TargetGroup}

    def test_no_dependencies(self) -> None:
        """get_dependencies should return empty set for leaves."""
        assert get_dependencies(NetworkRef) == set()

    def test_transitive_dependencies(self) -> None:
        """get_dependencies with transitive=True should follow the graph."""
        deps = get_dependencies(ListenerRule, transitive=True)
        assert deps == {
            Listener,
            LoadBalancer,
            SubnetSet,
            NetworkRef,
            SecurityGroup,
            TargetGroup,
        }

    def test_diamond_deduplicated(self) -> None:
        """NetworkRef is reachable twice from a scaling group but listed once."""
        deps = get_dependencies(ScalingGroup, transitive=True)
        assert deps == {ComputeTemplate, SecurityGroup, SubnetSet, TargetGroup, NetworkRef}


class TestReferences:
    """Tests for instance-level references."""

    def test_identifier_values(self) -> None:
        """references should report identifiers with their field and target."""
        subnets = SubnetSet(id="subnets", network="vpc")
        refs = list(references(subnets))
        assert len(refs) == 1
        assert refs[0].field == "network"
        assert refs[0].target is NetworkRef
        assert refs[0].identifier == "vpc"

    def test_entity_values(self) -> None:
        """Entity instances used as reference values resolve to their id."""
        vpc = NetworkRef(id="vpc", default=True)
        subnets = SubnetSet(id="subnets", network=vpc)
        assert [r.identifier for r in references(subnets)] == ["vpc"]

    def test_list_values(self) -> None:
        """Every element of a RefList is reported in order."""
        alb = LoadBalancer(id="alb", name="alb", subnets="s", security_groups=("a", "b"))
        assert [(r.field, r.identifier) for r in references(alb)] == [
            ("subnets", "s"),
            ("security_groups", "a"),
            ("security_groups", "b"),
        ]

    def test_nested_action(self) -> None:
        """A forward default action makes the listener reference its target group."""
        listener = Listener(
            id="http",
            load_balancer="alb",
            default_action=Forward(target_group="tg"),
        )
        refs = {r.field: r for r in references(listener)}
        assert refs["default_action.target_group"].identifier == "tg"
        assert refs["default_action.target_group"].target is TargetGroup

    def test_fixed_response_adds_nothing(self) -> None:
        """The default fixed-response action holds no reference."""
        listener = Listener(id="http", load_balancer="alb")
        assert [r.identifier for r in references(listener)] == ["alb"]

    def test_unset_references(self) -> None:
        """An unset optional reference is skipped; an unset required one is reported."""

        class Gateway:
            pass

        @dataclass
        class Route:
            target: Ref[Gateway]
            gateway: Ref[Gateway] | None = None

        refs = list(references(Route(target=None)))  # type: ignore[arg-type]
        assert [(r.field, r.identifier) for r in refs] == [("target", None)]

    def test_identifier_of_rejects_other_values(self) -> None:
        """identifier_of should reject values that are neither ids nor entities."""
        assert identifier_of("vpc") == "vpc"
        with pytest.raises(TypeError):
            identifier_of(42)


class TestRefInfo:
    """Tests for RefInfo dataclass."""

    def test_refinfo_defaults(self) -> None:
        """RefInfo should be creatable with required fields."""
        info = RefInfo(field="network", target=NetworkRef)
        assert info.is_list is False
        assert info.is_optional is False

    def test_refinfo_frozen(self) -> None:
        """RefInfo should be immutable."""
        info = RefInfo(field="network", target=NetworkRef)
        with pytest.raises(FrozenInstanceError):
            info.field = "other"  # type: ignore


class TestRefListOnPlainDataclass:
    """Markers also work on dataclasses outside the entity model."""

    def test_plain_dataclass(self) -> None:
        """get_refs and get_dependencies work on any annotated dataclass."""

        class Instance:
            pass

        @dataclass
        class Pool:
            members: RefList[Instance]
            name: str

        assert get_refs(Pool)["members"].is_list is True
        assert get_dependencies(Pool) == {Instance}
