"""
Schema loading and validation for multi-cluster gateway documents.

A document describes one logical Gateway, its load balancing policy and the
cluster gateways discovered for it:

    gateway:
      name: prod-web
      namespace: multi-cluster-gateways
    loadBalancing:
      geo:
        defaultGeo: EU
      weighted:
        defaultWeight: 120
        custom:
          - selector:
              matchLabels:
                tier: premium
            weight: 200
    clusterGateways:
      - clusterName: eu-west-1
        name: prod-web
        namespace: multi-cluster-gateways
        labels:
          kuadrant.io/lb-attribute-geo-code: IE
"""

import json
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import jsonschema
import yaml

from .targets import GatewayTarget, build_gateway_target
from .types import ClusterGateway, Gateway, LoadBalancingSpec


def get_schema_path() -> Path:
    """Get path to the bundled JSON schema file."""
    return Path(__file__).parent / "schemas" / "multicluster-schema.json"


@lru_cache(maxsize=1)
def load_schema() -> Dict[str, Any]:
    """Load the JSON schema for multi-cluster documents."""
    with open(get_schema_path()) as f:
        return json.load(f)


def validate_document(data: Any) -> List[str]:
    """
    Validate document data against the JSON schema.

    Returns list of validation errors (empty if valid).
    """
    validator = jsonschema.Draft7Validator(load_schema())
    errors = []
    for error in sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path]):
        path = ".".join(str(p) for p in error.absolute_path)
        errors.append(f"{path}: {error.message}" if path else error.message)
    return errors


@dataclass
class MultiClusterDocument:
    """A parsed multi-cluster gateway document."""
    gateway: Gateway
    cluster_gateways: List[ClusterGateway] = field(default_factory=list)
    load_balancing: Optional[LoadBalancingSpec] = None

    @classmethod
    def from_dict(cls, data: Dict) -> "MultiClusterDocument":
        return cls(
            gateway=Gateway.from_dict(data["gateway"]),
            cluster_gateways=[
                ClusterGateway.from_dict(cg) for cg in data.get("clusterGateways") or []
            ],
            load_balancing=LoadBalancingSpec.from_dict(data.get("loadBalancing")),
        )

    def build_target(self) -> GatewayTarget:
        """Resolve every cluster gateway in the document."""
        return build_gateway_target(self.gateway, self.cluster_gateways, self.load_balancing)


def load_document(path: str, validate: bool = True) -> MultiClusterDocument:
    """
    Load and parse a multi-cluster document.

    Args:
        path: Path to the YAML document
        validate: Whether to validate against schema

    Returns:
        Parsed MultiClusterDocument

    Raises:
        FileNotFoundError: If the document is not found
        ValueError: If validation or parsing fails
    """
    doc_path = Path(path)
    if not doc_path.exists():
        raise FileNotFoundError(f"document not found at {path}")

    with open(doc_path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"{path} is not valid YAML: {e}") from e

    if validate:
        errors = validate_document(data)
        if errors:
            raise ValueError("document validation failed:\n" + "\n".join(errors))

    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a mapping")
    try:
        return MultiClusterDocument.from_dict(data)
    except KeyError as e:
        raise ValueError(f"missing required field {e}") from e
