"""End-to-end tests for the reference web tier."""

from pathlib import Path

import pytest

from infra_graph import (
    CycleError,
    DuplicateNameError,
    Entity,
    EntityKind,
    Forward,
    Listener,
    UnresolvedReferenceError,
    ValidationFailed,
    emit,
    load_declarations,
)


class TestWebTier:
    """Emission of the ten-entity web tier."""

    def test_emits_all_entities_without_errors(self, web_tier: list[Entity]) -> None:
        """All ten entities are emitted and none are lost."""
        emission = emit(web_tier)
        assert len(emission) == 10
        assert sorted(emission.order) == sorted(e.id for e in web_tier)

    def test_precedence(self, web_tier: list[Entity]) -> None:
        """The creation order honours every expected precedence."""
        order = emit(web_tier).order
        pos = {entity_id: i for i, entity_id in enumerate(order)}

        # Network lookups come before everything else.
        assert order[:2] == ["default-vpc", "default-subnets"]

        for sg in ("alb-sg", "instance-sg"):
            assert pos[sg] < pos["web-template"]
            assert pos[sg] < pos["web-alb"]
        assert pos["web-template"] < pos["web-asg"]
        assert pos["web-alb"] < pos["http"]
        assert pos["web-tg"] < pos["web-asg"]
        assert pos["web-tg"] < pos["forward-all"]
        assert pos["http"] < pos["forward-all"]

    def test_exact_order(self, web_tier: list[Entity]) -> None:
        """Ties are broken by kind, then declaration order."""
        assert emit(web_tier).order == [
            "default-vpc",
            "default-subnets",
            "alb-sg",
            "instance-sg",
            "web-template",
            "web-tg",
            "web-alb",
            "http",
            "web-asg",
            "forward-all",
        ]

    def test_yaml_declaration(self, web_tier_yaml: Path) -> None:
        """The shipped YAML file emits cleanly with network lookups first."""
        emission = emit(load_declarations(web_tier_yaml))
        kinds = [entity.kind for entity in emission]
        assert kinds[:2] == [EntityKind.NETWORK, EntityKind.SUBNET_SET]
        assert kinds[-1] is EntityKind.LISTENER_RULE

    def test_document(self, web_tier: list[Entity]) -> None:
        """The emitted document lists resources in creation order."""
        document = emit(web_tier).to_document()
        resources = document["resources"]
        assert [r["id"] for r in resources] == emit(web_tier).order

        listener = next(r for r in resources if r["kind"] == "listener")
        assert listener["default_action"] == {
            "type": "fixed-response",
            "status_code": 404,
            "content_type": "text/plain",
            "body": "404: page not found",
        }

        asg = next(r for r in resources if r["kind"] == "scaling_group")
        assert asg["target_groups"] == ["web-tg"]
        assert asg["min_size"] == 2
        assert asg["max_size"] == 10


class TestFailures:
    """emit refuses broken declaration sets."""

    def test_validation_before_ordering(self, web_tier: list[Entity]) -> None:
        """Constraint errors are raised even when references are also broken."""
        broken = [e for e in web_tier if e.id != "default-vpc"]
        broken.append(
            Listener(id="https", load_balancer="web-alb", port=70000)
        )
        with pytest.raises(ValidationFailed) as excinfo:
            emit(broken)
        assert len(excinfo.value.errors) == 1

    def test_unresolved(self, web_tier: list[Entity]) -> None:
        broken = [e for e in web_tier if e.id != "web-tg"]
        with pytest.raises(UnresolvedReferenceError):
            emit(broken)

    def test_duplicate_identifier(self, web_tier: list[Entity]) -> None:
        """A repeated identifier is a constraint error, raised before ordering."""
        with pytest.raises(ValidationFailed) as excinfo:
            emit(web_tier + [Listener(id="http", load_balancer="web-alb", port=8080)])
        (error,) = excinfo.value.errors
        assert isinstance(error, DuplicateNameError)
        assert error.entity_id == "http"

    def test_forward_default_action_orders_target_group_first(
        self, web_tier: list[Entity]
    ) -> None:
        """A listener forwarding by default waits for its target group."""
        entities = [
            Listener(id="http", load_balancer="web-alb", default_action=Forward(target_group="web-tg"))
            if e.id == "http"
            else e
            for e in web_tier
        ]
        order = emit(entities).order
        assert order.index("web-tg") < order.index("http")

    def test_no_cycles_in_entity_model(self, web_tier: list[Entity]) -> None:
        """The web tier never triggers cycle detection."""
        try:
            emit(web_tier)
        except CycleError:  # pragma: no cover
            pytest.fail("web tier reported a cycle")
