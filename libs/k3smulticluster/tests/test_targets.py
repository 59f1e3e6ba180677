"""Tests for k3smulticluster gateway targets."""

import logging

import pytest

from k3smulticluster.selectors import InvalidSelectorError
from k3smulticluster.targets import (
    ClusterGatewayTarget,
    GatewayTarget,
    build_gateway_target,
    default_geo_for,
    default_weight_for,
    resolve_geo,
    resolve_weight,
)
from k3smulticluster.types import (
    DEFAULT_GEO,
    DEFAULT_WEIGHT,
    LABEL_LB_ATTRIBUTE_GEO_CODE,
    ClusterGateway,
    CustomWeight,
    Gateway,
    LabelSelector,
    LabelSelectorRequirement,
    LoadBalancingGeo,
    LoadBalancingSpec,
    LoadBalancingWeighted,
)


@pytest.fixture
def gateway():
    return Gateway(name="prod-web", namespace="multi-cluster-gateways")


def cluster_gateway(cluster, labels=None):
    return ClusterGateway(
        cluster_name=cluster,
        name="prod-web",
        namespace="multi-cluster-gateways",
        labels=labels or {},
    )


def premium_weight(weight=200):
    return CustomWeight(
        selector=LabelSelector(match_labels={"tier": "premium"}),
        weight=weight,
    )


def broken_weight():
    return CustomWeight(
        selector=LabelSelector(match_expressions=[
            LabelSelectorRequirement(key="tier", operator="Bogus", values=["x"]),
        ]),
        weight=1,
    )


@pytest.fixture
def eu_policy():
    return LoadBalancingSpec(
        geo=LoadBalancingGeo(default_geo="EU"),
        weighted=LoadBalancingWeighted(default_weight=100, custom=[premium_weight()]),
    )


class TestDefaults:
    def test_no_policy(self):
        assert default_geo_for(None) == DEFAULT_GEO
        assert default_weight_for(None) == DEFAULT_WEIGHT

    def test_empty_policy(self):
        policy = LoadBalancingSpec()
        assert default_geo_for(policy) == DEFAULT_GEO
        assert default_weight_for(policy) == DEFAULT_WEIGHT

    def test_policy_values(self, eu_policy):
        assert default_geo_for(eu_policy) == "EU"
        assert default_weight_for(eu_policy) == 100


class TestResolveGeo:
    def test_default_geo_ignores_label(self):
        cg = cluster_gateway("us-east-1", {LABEL_LB_ATTRIBUTE_GEO_CODE: "US"})
        assert resolve_geo(cg, DEFAULT_GEO) == DEFAULT_GEO

    def test_explicit_default_geo_ignores_label(self):
        cg = cluster_gateway("us-east-1", {LABEL_LB_ATTRIBUTE_GEO_CODE: "US"})
        assert resolve_geo(cg, "default") == DEFAULT_GEO

    def test_label_overrides_non_default_geo(self):
        cg = cluster_gateway("us-east-1", {LABEL_LB_ATTRIBUTE_GEO_CODE: "US"})
        assert resolve_geo(cg, "EU") == "US"

    def test_no_label_uses_policy_geo(self):
        assert resolve_geo(cluster_gateway("eu-west-1"), "EU") == "EU"


class TestResolveWeight:
    def test_no_custom_weights(self):
        assert resolve_weight(cluster_gateway("a", {"tier": "premium"}), 100, []) == 100

    def test_matching_custom_weight(self):
        cg = cluster_gateway("a", {"tier": "premium"})
        assert resolve_weight(cg, 100, [premium_weight()]) == 200

    def test_first_match_wins(self):
        cg = cluster_gateway("a", {"tier": "premium", "region": "eu"})
        custom = [
            CustomWeight(selector=LabelSelector(match_labels={"region": "eu"}), weight=10),
            premium_weight(),
        ]
        assert resolve_weight(cg, 100, custom) == 10

    def test_stops_at_first_match(self):
        # a malformed entry after the match is never compiled
        cg = cluster_gateway("a", {"tier": "premium"})
        assert resolve_weight(cg, 100, [premium_weight(), broken_weight()]) == 200

    def test_zero_weight_override(self):
        cg = cluster_gateway("a", {"tier": "premium"})
        assert resolve_weight(cg, 100, [premium_weight(0)]) == 0

    def test_nil_selector_matches_nothing(self):
        cg = cluster_gateway("a", {"tier": "premium"})
        assert resolve_weight(cg, 100, [CustomWeight(selector=None, weight=5)]) == 100

    def test_empty_selector_matches_everything(self):
        cg = cluster_gateway("a")
        assert resolve_weight(cg, 100, [CustomWeight(selector=LabelSelector(), weight=5)]) == 5

    def test_malformed_selector(self):
        cg = cluster_gateway("a")
        with pytest.raises(InvalidSelectorError) as exc_info:
            resolve_weight(cg, 100, [premium_weight(), broken_weight()])
        assert exc_info.value.weight_index == 1


class TestClusterGatewayTarget:
    def test_build(self):
        cg = cluster_gateway("eu-west-1", {LABEL_LB_ATTRIBUTE_GEO_CODE: "IE", "tier": "premium"})
        target = ClusterGatewayTarget.build(cg, "EU", 100, [premium_weight()])
        assert target.geo == "IE"
        assert target.weight == 200
        assert target.name == "eu-west-1"
        assert target.cluster_name == "eu-west-1"
        assert target.namespace == "multi-cluster-gateways"

    def test_short_code(self):
        target = ClusterGatewayTarget.build(cluster_gateway("eu-west-1"), DEFAULT_GEO, 100)
        assert target.short_code == "eu-west-1-31i0885"

    def test_owns_its_labels(self):
        labels = {"tier": "premium"}
        target = ClusterGatewayTarget.build(cluster_gateway("a", labels), DEFAULT_GEO, 100)
        labels["tier"] = "basic"
        assert target.labels == {"tier": "premium"}
        target.labels["tier"] = "changed"
        assert target.cluster_gateway.labels == {"tier": "premium"}

    def test_to_dict(self):
        target = ClusterGatewayTarget.build(cluster_gateway("eu-west-1"), "EU", 100)
        assert target.to_dict() == {
            "name": "eu-west-1",
            "shortCode": "eu-west-1-31i0885",
            "gateway": "multi-cluster-gateways/prod-web",
            "geo": "EU",
            "weight": 100,
        }


class TestBuildGatewayTarget:
    def test_example_policy(self, gateway, eu_policy):
        a = cluster_gateway("a", {LABEL_LB_ATTRIBUTE_GEO_CODE: "US", "tier": "premium"})
        b = cluster_gateway("b")
        target = build_gateway_target(gateway, [a, b], eu_policy)

        assert [(t.name, t.geo, t.weight) for t in target.cluster_gateway_targets] == [
            ("a", "US", 200),
            ("b", "EU", 100),
        ]

    def test_no_geo_ignores_labels(self, gateway):
        c = cluster_gateway("c", {LABEL_LB_ATTRIBUTE_GEO_CODE: "US"})
        policy = LoadBalancingSpec(weighted=LoadBalancingWeighted(default_weight=100))
        target = build_gateway_target(gateway, [c], policy)
        assert target.cluster_gateway_targets[0].geo == DEFAULT_GEO
        assert target.cluster_gateway_targets[0].weight == 100

    def test_no_policy(self, gateway):
        c = cluster_gateway("c", {LABEL_LB_ATTRIBUTE_GEO_CODE: "US", "tier": "premium"})
        target = build_gateway_target(gateway, [c])
        assert target.load_balancing is None
        assert target.cluster_gateway_targets[0].geo == DEFAULT_GEO
        assert target.cluster_gateway_targets[0].weight == DEFAULT_WEIGHT

    def test_empty_cluster_gateways(self, gateway, eu_policy):
        target = build_gateway_target(gateway, [], eu_policy)
        assert target.cluster_gateway_targets == ()
        assert target.group_targets_by_geo() == {}

    def test_preserves_input_order(self, gateway, eu_policy):
        clusters = [cluster_gateway(name) for name in ["z", "a", "m", "b"]]
        target = build_gateway_target(gateway, clusters, eu_policy)
        assert [t.name for t in target.cluster_gateway_targets] == ["z", "a", "m", "b"]

    def test_malformed_selector_fails_whole_build(self, gateway, caplog):
        policy = LoadBalancingSpec(
            geo=LoadBalancingGeo(default_geo="EU"),
            weighted=LoadBalancingWeighted(
                default_weight=100,
                custom=[premium_weight(), broken_weight()],
            ),
        )
        # the first cluster matches before reaching the malformed entry
        clusters = [cluster_gateway("a", {"tier": "premium"}), cluster_gateway("b")]

        with caplog.at_level(logging.WARNING, logger="k3smulticluster.targets"):
            with pytest.raises(InvalidSelectorError) as exc_info:
                build_gateway_target(gateway, clusters, policy)

        error = exc_info.value
        assert error.gateway == gateway
        assert error.weight_index == 1
        assert "multi-cluster-gateways/prod-web" in str(error)
        assert "Failed to resolve cluster b" in caplog.text


class TestGatewayTarget:
    def test_name_and_short_code(self, gateway):
        target = build_gateway_target(gateway, [])
        assert target.name == "prod-web-multi-cluster-gateways"
        assert target.short_code == "4ej5lex"

    def test_defaults(self, gateway, eu_policy):
        assert build_gateway_target(gateway, [], eu_policy).default_geo == "EU"
        assert build_gateway_target(gateway, [], eu_policy).default_weight == 100
        assert build_gateway_target(gateway, []).default_geo == DEFAULT_GEO
        assert build_gateway_target(gateway, []).default_weight == DEFAULT_WEIGHT

    def test_group_targets_by_geo(self, gateway, eu_policy):
        clusters = [
            cluster_gateway("us-1", {LABEL_LB_ATTRIBUTE_GEO_CODE: "US"}),
            cluster_gateway("eu-1"),
            cluster_gateway("us-2", {LABEL_LB_ATTRIBUTE_GEO_CODE: "US"}),
            cluster_gateway("eu-2"),
            cluster_gateway("ie-1", {LABEL_LB_ATTRIBUTE_GEO_CODE: "IE"}),
        ]
        target = build_gateway_target(gateway, clusters, eu_policy)
        groups = target.group_targets_by_geo()

        assert list(groups) == ["US", "EU", "IE"]
        assert [t.name for t in groups["US"]] == ["us-1", "us-2"]
        assert [t.name for t in groups["EU"]] == ["eu-1", "eu-2"]
        assert [t.name for t in groups["IE"]] == ["ie-1"]

        grouped = [t for bucket in groups.values() for t in bucket]
        assert sorted(t.name for t in grouped) == sorted(t.name for t in target.cluster_gateway_targets)

    def test_group_default_geo(self, gateway):
        clusters = [cluster_gateway("a", {LABEL_LB_ATTRIBUTE_GEO_CODE: "US"}), cluster_gateway("b")]
        groups = build_gateway_target(gateway, clusters).group_targets_by_geo()
        assert list(groups) == [DEFAULT_GEO]
        assert len(groups[DEFAULT_GEO]) == 2

    def test_get_target(self, gateway, eu_policy):
        target = build_gateway_target(gateway, [cluster_gateway("a"), cluster_gateway("b")], eu_policy)
        assert target.get_target("b").name == "b"
        assert target.get_target("missing") is None

    def test_targets_are_immutable(self, gateway):
        target = build_gateway_target(gateway, [cluster_gateway("a")])
        with pytest.raises(AttributeError):
            target.cluster_gateway_targets[0].weight = 1
        assert isinstance(target, GatewayTarget)
