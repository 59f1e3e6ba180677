"""
Type definitions for multi-cluster gateway load balancing.

These dataclasses mirror the loadBalancing section of a DNS policy and the
per-cluster gateway records handed over by gateway discovery.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


LABEL_LB_ATTRIBUTE_GEO_CODE = "kuadrant.io/lb-attribute-geo-code"

DEFAULT_WEIGHT = 120


class GeoCode(str):
    """Geographic routing region assigned to a cluster gateway.

    - "default": the catch-all region used when no geo policy is configured
    - "*": wildcard, matches any region
    - "C-XX": a continent code (e.g. C-EU)
    - anything else is treated as a country code (e.g. US, IE)
    """

    def is_default_code(self) -> bool:
        return self == DEFAULT_GEO

    def is_wildcard(self) -> bool:
        return self == WILDCARD_GEO

    def is_continent_code(self) -> bool:
        return self.startswith("C-")

    def is_country_code(self) -> bool:
        return not (
            self.is_default_code()
            or self.is_wildcard()
            or self.is_continent_code()
        )


DEFAULT_GEO = GeoCode("default")
WILDCARD_GEO = GeoCode("*")


class SelectorOperator(str, Enum):
    """Set-based label selector operator."""
    IN = "In"
    NOT_IN = "NotIn"
    EXISTS = "Exists"
    DOES_NOT_EXIST = "DoesNotExist"


def _parse_weight(value: Any, field_name: str) -> int:
    # bool is an int subclass, reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field_name} must be an integer, got {value!r}")
    if value < 0:
        raise ValueError(f"{field_name} must be non-negative, got {value}")
    return value


@dataclass(frozen=True)
class LabelSelectorRequirement:
    """A single matchExpressions entry.

    The operator is kept as the raw string so that unknown operators survive
    parsing and are reported when the selector is compiled.
    """
    key: str
    operator: str
    values: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict) -> "LabelSelectorRequirement":
        return cls(
            key=data.get("key", ""),
            operator=data.get("operator", ""),
            values=list(data.get("values") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"key": self.key, "operator": self.operator}
        if self.values:
            result["values"] = list(self.values)
        return result


@dataclass(frozen=True)
class LabelSelector:
    """Kubernetes-style label selector (matchLabels + matchExpressions)."""
    match_labels: Dict[str, str] = field(default_factory=dict)
    match_expressions: List[LabelSelectorRequirement] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> Optional["LabelSelector"]:
        if data is None:
            return None
        return cls(
            match_labels=dict(data.get("matchLabels") or {}),
            match_expressions=[
                LabelSelectorRequirement.from_dict(e)
                for e in data.get("matchExpressions") or []
            ],
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.match_labels:
            result["matchLabels"] = dict(self.match_labels)
        if self.match_expressions:
            result["matchExpressions"] = [e.to_dict() for e in self.match_expressions]
        return result

    def __str__(self) -> str:
        parts = [f"{k}={v}" for k, v in sorted(self.match_labels.items())]
        for expr in self.match_expressions:
            if expr.values:
                parts.append(f"{expr.key} {expr.operator} ({','.join(expr.values)})")
            else:
                parts.append(f"{expr.key} {expr.operator}")
        return ",".join(parts)


@dataclass(frozen=True)
class CustomWeight:
    """Weight override applied to cluster gateways matching the selector."""
    selector: Optional[LabelSelector]
    weight: int

    @classmethod
    def from_dict(cls, data: Dict) -> "CustomWeight":
        return cls(
            selector=LabelSelector.from_dict(data.get("selector")),
            weight=_parse_weight(data.get("weight"), "custom weight"),
        )


@dataclass(frozen=True)
class LoadBalancingWeighted:
    """Weighted load balancing: a default weight and ordered overrides."""
    default_weight: int = DEFAULT_WEIGHT
    custom: List[CustomWeight] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> Optional["LoadBalancingWeighted"]:
        if data is None:
            return None
        return cls(
            default_weight=_parse_weight(
                data.get("defaultWeight", DEFAULT_WEIGHT), "defaultWeight"
            ),
            custom=[CustomWeight.from_dict(c) for c in data.get("custom") or []],
        )


@dataclass(frozen=True)
class LoadBalancingGeo:
    """Geo load balancing: the geo code used when no label overrides it."""
    default_geo: str

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> Optional["LoadBalancingGeo"]:
        if data is None:
            return None
        default_geo = data.get("defaultGeo")
        if not isinstance(default_geo, str) or not default_geo:
            raise ValueError("geo.defaultGeo must be a non-empty string")
        return cls(default_geo=default_geo)


@dataclass(frozen=True)
class LoadBalancingSpec:
    """Load balancing policy attached to a Gateway."""
    weighted: Optional[LoadBalancingWeighted] = None
    geo: Optional[LoadBalancingGeo] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> Optional["LoadBalancingSpec"]:
        if data is None:
            return None
        return cls(
            weighted=LoadBalancingWeighted.from_dict(data.get("weighted")),
            geo=LoadBalancingGeo.from_dict(data.get("geo")),
        )


@dataclass(frozen=True)
class Gateway:
    """Reference to the logical multi-cluster Gateway."""
    name: str
    namespace: str

    @classmethod
    def from_dict(cls, data: Dict) -> "Gateway":
        return cls(
            name=data["name"],
            namespace=data["namespace"],
        )


@dataclass(frozen=True)
class ClusterGateway:
    """A Gateway instance discovered on one cluster."""
    cluster_name: str
    name: str
    namespace: str
    labels: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict) -> "ClusterGateway":
        return cls(
            cluster_name=data["clusterName"],
            name=data["name"],
            namespace=data["namespace"],
            labels=dict(data.get("labels") or {}),
        )
