"""
K3s Multicluster - Geo and weight resolution for multi-cluster gateways.

Given a Gateway, the cluster gateways discovered for it and a load balancing
policy, this library resolves the geo code and weight of every cluster
gateway so DNS load balancing records can be generated from the result.
"""

from .types import (
    DEFAULT_GEO,
    DEFAULT_WEIGHT,
    LABEL_LB_ATTRIBUTE_GEO_CODE,
    WILDCARD_GEO,
    ClusterGateway,
    CustomWeight,
    Gateway,
    GeoCode,
    LabelSelector,
    LabelSelectorRequirement,
    LoadBalancingGeo,
    LoadBalancingSpec,
    LoadBalancingWeighted,
)
from .selectors import InvalidSelectorError, Selector, label_selector_as_selector
from .hashing import to_base36_hash, to_base36_hash_len
from .targets import (
    ClusterGatewayTarget,
    GatewayTarget,
    build_gateway_target,
    resolve_geo,
    resolve_weight,
)
from .schema import MultiClusterDocument, load_document, validate_document

__version__ = "0.1.0"
__all__ = [
    "DEFAULT_GEO",
    "DEFAULT_WEIGHT",
    "LABEL_LB_ATTRIBUTE_GEO_CODE",
    "WILDCARD_GEO",
    "ClusterGateway",
    "CustomWeight",
    "Gateway",
    "GeoCode",
    "LabelSelector",
    "LabelSelectorRequirement",
    "LoadBalancingGeo",
    "LoadBalancingSpec",
    "LoadBalancingWeighted",
    "InvalidSelectorError",
    "Selector",
    "label_selector_as_selector",
    "to_base36_hash",
    "to_base36_hash_len",
    "ClusterGatewayTarget",
    "GatewayTarget",
    "build_gateway_target",
    "resolve_geo",
    "resolve_weight",
    "MultiClusterDocument",
    "load_document",
    "validate_document",
]
