"""
Gateway targets for multi-cluster load balancing.

A GatewayTarget is a Gateway placed on multiple clusters. Each cluster
instance becomes a ClusterGatewayTarget with its geo code and weight
resolved from the load balancing policy.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple

from .hashing import SHORT_CODE_LENGTH, to_base36_hash_len
from .selectors import InvalidSelectorError, label_selector_as_selector
from .types import (
    DEFAULT_GEO,
    DEFAULT_WEIGHT,
    LABEL_LB_ATTRIBUTE_GEO_CODE,
    ClusterGateway,
    CustomWeight,
    Gateway,
    GeoCode,
    LoadBalancingSpec,
)

logger = logging.getLogger(__name__)


def default_geo_for(load_balancing: Optional[LoadBalancingSpec]) -> GeoCode:
    """Geo code applied when no cluster label overrides it."""
    if load_balancing is not None and load_balancing.geo is not None:
        return GeoCode(load_balancing.geo.default_geo)
    return DEFAULT_GEO


def default_weight_for(load_balancing: Optional[LoadBalancingSpec]) -> int:
    """Weight applied when no custom weight selector matches."""
    if load_balancing is not None and load_balancing.weighted is not None:
        return load_balancing.weighted.default_weight
    return DEFAULT_WEIGHT


def custom_weights_for(load_balancing: Optional[LoadBalancingSpec]) -> List[CustomWeight]:
    if load_balancing is not None and load_balancing.weighted is not None:
        return list(load_balancing.weighted.custom)
    return []


def resolve_geo(cluster_gateway: ClusterGateway, default_geo: str) -> GeoCode:
    """
    Resolve the geo code of a cluster gateway.

    The geo code label on the cluster gateway is only honoured once a
    non-default geo has been configured; with the default geo every
    cluster gateway stays in the default region.
    """
    geo_code = GeoCode(default_geo)
    if geo_code == DEFAULT_GEO:
        return geo_code
    label_value = cluster_gateway.labels.get(LABEL_LB_ATTRIBUTE_GEO_CODE)
    if label_value is not None:
        return GeoCode(label_value)
    return geo_code


def resolve_weight(
    cluster_gateway: ClusterGateway,
    default_weight: int,
    custom_weights: Sequence[CustomWeight],
) -> int:
    """
    Resolve the weight of a cluster gateway.

    Custom weights are checked in order; the first selector matching the
    cluster gateway labels wins.

    Raises:
        InvalidSelectorError: If a custom weight selector is malformed. The
            position of the offending entry is set as ``weight_index``.
    """
    for index, custom_weight in enumerate(custom_weights):
        try:
            selector = label_selector_as_selector(custom_weight.selector)
        except InvalidSelectorError as e:
            e.weight_index = index
            raise
        if selector.matches(cluster_gateway.labels):
            return custom_weight.weight
    return default_weight


@dataclass(frozen=True)
class ClusterGatewayTarget:
    """A cluster gateway with geo and weighting info calculated."""
    cluster_gateway: ClusterGateway
    geo: GeoCode
    weight: int

    @classmethod
    def build(
        cls,
        cluster_gateway: ClusterGateway,
        default_geo: str,
        default_weight: int,
        custom_weights: Sequence[CustomWeight] = (),
    ) -> "ClusterGatewayTarget":
        owned = replace(cluster_gateway, labels=dict(cluster_gateway.labels))
        return cls(
            cluster_gateway=owned,
            geo=resolve_geo(owned, default_geo),
            weight=resolve_weight(owned, default_weight, custom_weights),
        )

    @property
    def cluster_name(self) -> str:
        return self.cluster_gateway.cluster_name

    @property
    def namespace(self) -> str:
        return self.cluster_gateway.namespace

    @property
    def labels(self) -> Dict[str, str]:
        return dict(self.cluster_gateway.labels)

    @property
    def name(self) -> str:
        return self.cluster_gateway.cluster_name

    @property
    def short_code(self) -> str:
        """Cluster name plus a short hash of the gateway namespace and name."""
        gateway_ref = f"{self.cluster_gateway.namespace}-{self.cluster_gateway.name}"
        return f"{self.cluster_name}-{to_base36_hash_len(gateway_ref, SHORT_CODE_LENGTH)}"

    def to_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "shortCode": self.short_code,
            "gateway": f"{self.namespace}/{self.cluster_gateway.name}",
            "geo": str(self.geo),
            "weight": self.weight,
        }


@dataclass(frozen=True)
class GatewayTarget:
    """A Gateway that is placed on multiple clusters."""
    gateway: Gateway
    load_balancing: Optional[LoadBalancingSpec] = None
    cluster_gateway_targets: Tuple[ClusterGatewayTarget, ...] = field(default_factory=tuple)

    @property
    def name(self) -> str:
        return f"{self.gateway.name}-{self.gateway.namespace}"

    @property
    def short_code(self) -> str:
        return to_base36_hash_len(self.name, SHORT_CODE_LENGTH)

    @property
    def default_geo(self) -> GeoCode:
        return default_geo_for(self.load_balancing)

    @property
    def default_weight(self) -> int:
        return default_weight_for(self.load_balancing)

    def group_targets_by_geo(self) -> Dict[GeoCode, List[ClusterGatewayTarget]]:
        """
        Group targets by geo code.

        Buckets appear in order of first occurrence and keep the original
        target order within each bucket.
        """
        geo_targets: Dict[GeoCode, List[ClusterGatewayTarget]] = {}
        for target in self.cluster_gateway_targets:
            geo_targets.setdefault(target.geo, []).append(target)
        return geo_targets

    def get_target(self, cluster_name: str) -> Optional[ClusterGatewayTarget]:
        """Get the target for a cluster by name."""
        for target in self.cluster_gateway_targets:
            if target.name == cluster_name:
                return target
        return None


def build_gateway_target(
    gateway: Gateway,
    cluster_gateways: Sequence[ClusterGateway],
    load_balancing: Optional[LoadBalancingSpec] = None,
) -> GatewayTarget:
    """
    Build a GatewayTarget, resolving geo and weight for every cluster gateway.

    Either every cluster gateway resolves or nothing is returned.

    Args:
        gateway: The logical Gateway
        cluster_gateways: Cluster gateways discovered for it, in order
        load_balancing: Load balancing policy, if any

    Returns:
        GatewayTarget with one ClusterGatewayTarget per cluster gateway

    Raises:
        InvalidSelectorError: If a custom weight selector is malformed
    """
    default_geo = default_geo_for(load_balancing)
    default_weight = default_weight_for(load_balancing)
    custom_weights = custom_weights_for(load_balancing)

    targets: List[ClusterGatewayTarget] = []
    for cluster_gateway in cluster_gateways:
        try:
            target = ClusterGatewayTarget.build(
                cluster_gateway, default_geo, default_weight, custom_weights
            )
        except InvalidSelectorError as e:
            e.gateway = gateway
            logger.warning(f"Failed to resolve cluster {cluster_gateway.cluster_name}: {e}")
            raise
        targets.append(target)

    logger.debug(
        f"Resolved {len(targets)} cluster targets for gateway "
        f"{gateway.namespace}/{gateway.name} (default geo: {default_geo}, "
        f"default weight: {default_weight})"
    )
    return GatewayTarget(
        gateway=gateway,
        load_balancing=load_balancing,
        cluster_gateway_targets=tuple(targets),
    )
