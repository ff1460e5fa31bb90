#!/usr/bin/env python3
"""Demo: declaring, checking and ordering a web tier in Python.

The same topology as web_tier.yaml, built directly from entity classes.

Run with: python examples/demo.py
"""

from infra_graph import (
    ComputeTemplate,
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
    ValidationFailed,
    emit,
    get_dependencies,
    get_refs,
    validate,
)


# =============================================================================
# PART 1: Declarations
# =============================================================================
#
# References can be given as identifiers ("default-vpc") or as the
# entity objects themselves (vpc); both resolve to the same identifier.

vpc = NetworkRef(id="default-vpc", default=True)

subnets = SubnetSet(
    id="default-subnets",
    network=vpc,
    filters=(Filter(name="default-for-az", values=("true",)),),
)

instance_sg = SecurityGroup(
    id="instance-sg",
    name="web-instance",
    rules=(SecurityRule(direction="ingress", from_port=8080, to_port=8080),),
)

alb_sg = SecurityGroup(
    id="alb-sg",
    name="web-alb",
    rules=(
        SecurityRule(direction="ingress", from_port=80, to_port=80),
        SecurityRule(direction="egress", from_port=0, to_port=0, protocol="-1"),
    ),
)

template = ComputeTemplate(
    id="web-template",
    name_prefix="web-",
    image_id="ami-0fb653ca2d3203ac1",
    instance_type="t2.micro",
    security_groups=(instance_sg,),
    user_data='#!/bin/bash\necho "Hello, World" > index.html\nnohup busybox httpd -f -p 8080 &\n',
)

target_group = TargetGroup(
    id="web-tg",
    name="web",
    port=8080,
    network=vpc,
    health_check=HealthCheck(interval=15, timeout=3, healthy_threshold=2, unhealthy_threshold=2),
)

asg = ScalingGroup(
    id="web-asg",
    name="web",
    template=template,
    subnets=subnets,
    min_size=2,
    max_size=10,
    target_groups=(target_group,),
    tags=(Tag(key="Name", value="web-asg"),),
)

alb = LoadBalancer(id="web-alb", name="web", subnets=subnets, security_groups=(alb_sg,))

listener = Listener(id="http", load_balancer=alb, default_action=FixedResponse(status_code=404))

rule = ListenerRule(
    id="forward-all",
    listener=listener,
    priority=100,
    condition=PathPattern(values=("*",)),
    target_group=target_group,
)

WEB_TIER = [rule, listener, alb, asg, target_group, template, alb_sg, instance_sg, subnets, vpc]


# =============================================================================
# PART 2: Introspection
# =============================================================================


def demo_introspection() -> None:
    print("Reference fields of ScalingGroup:")
    for name, info in get_refs(ScalingGroup).items():
        marker = "RefList" if info.is_list else "Ref"
        print(f"  {name}: {marker}[{info.target.__name__}]")

    deps = sorted(cls.__name__ for cls in get_dependencies(ListenerRule, transitive=True))
    print(f"ListenerRule depends on: {', '.join(deps)}")
    print()


# =============================================================================
# PART 3: Emission
# =============================================================================


def demo_emission() -> None:
    emission = emit(WEB_TIER)
    print("Creation order:")
    for entity in emission:
        print(f"  {entity.kind.value:<16} {entity.id}")
    print()


# =============================================================================
# PART 4: Every problem at once
# =============================================================================


def demo_validation() -> None:
    broken = [
        ScalingGroup(
            id="bad-asg",
            name="bad",
            template="web-template",
            subnets="default-subnets",
            min_size=5,
            max_size=2,
        ),
        TargetGroup(
            id="bad-tg",
            name="web",
            port=8080,
            network="default-vpc",
            health_check=HealthCheck(interval=5, timeout=5),
        ),
        ListenerRule(id="dup-rule", listener="http", priority=100, target_group="web-tg"),
    ]
    for error in validate(WEB_TIER + broken):
        print(f"  {type(error).__name__}: {error}")

    try:
        emit(WEB_TIER + broken)
    except ValidationFailed as exc:
        print(f"emit() refused: {len(exc.errors)} errors")


if __name__ == "__main__":
    demo_introspection()
    demo_emission()
    demo_validation()
