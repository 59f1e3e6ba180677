"""
CLI for k3smulticluster - resolve geo and weight for multi-cluster gateways.

Commands:
    resolve     Resolve geo code and weight for every cluster gateway
    groups      Show cluster targets grouped by geo code
    validate    Validate a multi-cluster document
    hash        Print the short code for a value
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

import yaml

from .hashing import SHORT_CODE_LENGTH, to_base36_hash_len
from .schema import load_document, validate_document
from .targets import GatewayTarget


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="k3smulticluster",
        description="Resolve geo and weight for gateways placed on multiple clusters",
    )
    parser.add_argument(
        "-f", "--file",
        default="multicluster.yaml",
        help="Path to multi-cluster document (default: multicluster.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # resolve command
    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Resolve geo code and weight for every cluster gateway",
    )
    resolve_parser.add_argument(
        "--format",
        choices=["table", "yaml", "json"],
        default="table",
        help="Output format (default: table)",
    )

    # groups command
    groups_parser = subparsers.add_parser(
        "groups",
        help="Show cluster targets grouped by geo code",
    )
    groups_parser.add_argument(
        "--format",
        choices=["table", "yaml", "json"],
        default="table",
        help="Output format (default: table)",
    )

    # validate command
    subparsers.add_parser(
        "validate",
        help="Validate a multi-cluster document",
    )

    # hash command
    hash_parser = subparsers.add_parser(
        "hash",
        help="Print the short code for a value",
    )
    hash_parser.add_argument("value", help="Value to hash")
    hash_parser.add_argument(
        "--length", "-l",
        type=int,
        default=SHORT_CODE_LENGTH,
        help=f"Short code length (default: {SHORT_CODE_LENGTH})",
    )

    return parser


def load_target(path: str) -> GatewayTarget:
    document = load_document(path)
    return document.build_target()


def target_summary(target: GatewayTarget) -> Dict[str, Any]:
    return {
        "gateway": target.name,
        "shortCode": target.short_code,
        "defaultGeo": str(target.default_geo),
        "defaultWeight": target.default_weight,
        "targets": [t.to_dict() for t in target.cluster_gateway_targets],
    }


def output_data(data: Any, output_format: str) -> None:
    if output_format == "json":
        print(json.dumps(data, indent=2))
    else:
        print(yaml.dump(data, default_flow_style=False, sort_keys=False), end="")


def _run_with_target(args: argparse.Namespace) -> Optional[GatewayTarget]:
    try:
        return load_target(args.file)
    except FileNotFoundError:
        print(f"Error: document not found at {args.file}", file=sys.stderr)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
    return None


def cmd_resolve(args: argparse.Namespace) -> int:
    """Handle resolve command."""
    target = _run_with_target(args)
    if target is None:
        return 1

    if args.format != "table":
        output_data(target_summary(target), args.format)
        return 0

    print(f"Gateway: {target.name} ({target.short_code})")
    print(f"Defaults: geo={target.default_geo} weight={target.default_weight}")
    if not target.cluster_gateway_targets:
        print("No cluster gateways")
        return 0

    print(f"{'CLUSTER':<25} {'SHORT CODE':<35} {'GEO':<10} {'WEIGHT':<8}")
    print("-" * 80)
    for cluster_target in target.cluster_gateway_targets:
        print(
            f"{cluster_target.name:<25} "
            f"{cluster_target.short_code:<35} "
            f"{cluster_target.geo:<10} "
            f"{cluster_target.weight:<8}"
        )
    return 0


def cmd_groups(args: argparse.Namespace) -> int:
    """Handle groups command."""
    target = _run_with_target(args)
    if target is None:
        return 1

    groups = target.group_targets_by_geo()
    if args.format != "table":
        output_data(
            {str(geo): [t.to_dict() for t in targets] for geo, targets in groups.items()},
            args.format,
        )
        return 0

    if not groups:
        print("No cluster gateways")
        return 0

    for geo, targets in groups.items():
        total = sum(t.weight for t in targets)
        print(f"{geo} ({len(targets)} targets, total weight {total})")
        for cluster_target in targets:
            print(f"  - {cluster_target.name} weight={cluster_target.weight}")
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Handle validate command."""
    try:
        with open(args.file) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        print(f"Error: document not found at {args.file}", file=sys.stderr)
        return 1
    except yaml.YAMLError as e:
        print(f"Error: {args.file} is not valid YAML: {e}", file=sys.stderr)
        return 1

    errors = validate_document(data)
    if errors:
        print("Validation errors:", file=sys.stderr)
        for error in errors:
            print(f"  - {error}", file=sys.stderr)
        return 1

    # Schema validity does not cover selector syntax, so resolve as well
    target = _run_with_target(args)
    if target is None:
        return 1

    print(f"✓ {args.file} is valid")
    print(f"  Found {len(target.cluster_gateway_targets)} cluster gateways")
    return 0


def cmd_hash(args: argparse.Namespace) -> int:
    """Handle hash command."""
    try:
        print(to_base36_hash_len(args.value, args.length))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    if not args.command:
        parser.print_help()
        return 0

    commands = {
        "resolve": cmd_resolve,
        "groups": cmd_groups,
        "validate": cmd_validate,
        "hash": cmd_hash,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
