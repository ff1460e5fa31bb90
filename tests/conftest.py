"""Shared fixtures: the reference web tier topology."""

from pathlib import Path

import pytest

from infra_graph import (
    ComputeTemplate,
    Entity,
    Filter,
    FixedResponse,
    HealthCheck,
    Listener,
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

EXAMPLES_DIR = Path(__file__).parent.parent / "examples"


def build_web_tier() -> list[Entity]:
    """Ten entities, declared dependents-first so ordering has work to do."""
    return [
        ListenerRule(
            id="forward-all",
            listener="http",
            priority=100,
            condition=PathPattern(values=("*",)),
            target_group="web-tg",
        ),
        Listener(
            id="http",
            load_balancer="web-alb",
            port=80,
            protocol="HTTP",
            default_action=FixedResponse(status_code=404),
        ),
        ScalingGroup(
            id="web-asg",
            name="web",
            template="web-template",
            subnets="default-subnets",
            min_size=2,
            max_size=10,
            target_groups=("web-tg",),
            tags=(Tag(key="Name", value="web-asg"),),
        ),
        LoadBalancer(
            id="web-alb",
            name="web",
            subnets="default-subnets",
            security_groups=("alb-sg",),
        ),
        ComputeTemplate(
            id="web-template",
            name_prefix="web-",
            image_id="ami-0fb653ca2d3203ac1",
            instance_type="t2.micro",
            security_groups=("instance-sg",),
        ),
        TargetGroup(
            id="web-tg",
            name="web",
            port=8080,
            network="default-vpc",
            health_check=HealthCheck(
                interval=15, timeout=3, healthy_threshold=2, unhealthy_threshold=2
            ),
        ),
        SecurityGroup(
            id="alb-sg",
            name="web-alb",
            rules=(
                SecurityRule(direction="ingress", from_port=80, to_port=80),
                SecurityRule(direction="egress", from_port=0, to_port=0, protocol="-1"),
            ),
        ),
        SecurityGroup(
            id="instance-sg",
            name="web-instance",
            rules=(SecurityRule(direction="ingress", from_port=8080, to_port=8080),),
        ),
        SubnetSet(
            id="default-subnets",
            network="default-vpc",
            filters=(Filter(name="default-for-az", values=("true",)),),
        ),
        NetworkRef(id="default-vpc", default=True),
    ]


@pytest.fixture
def web_tier() -> list[Entity]:
    return build_web_tier()


@pytest.fixture
def web_tier_yaml() -> Path:
    return EXAMPLES_DIR / "web_tier.yaml"
