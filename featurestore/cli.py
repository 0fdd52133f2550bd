"""CLI entry point for FeatureStore manifests and the online feature server.

Usage:
    python -m featurestore validate config/samples/db_persistence.yaml
    python -m featurestore render config/samples/db_persistence.yaml --name example
    python -m featurestore get-online-features --entity driver_id=1001,1002 \
        --feature driver_hourly_stats:conv_rate --url http://localhost:6566
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

import structlog

from featurestore.config import settings
from featurestore.errors import FeatureStoreConfigError
from featurestore.resources.manifests import load_manifests
from featurestore.resources.repo_config import dump_repo_config, render_repo_config
from featurestore.serving.client import FeatureServerClient
from featurestore.serving.models import OnlineFeaturesRequest
from featurestore.shared.logging import setup_logging

logger = structlog.get_logger()


def _parse_entity(raw: str) -> tuple[str, list[int | str]]:
    key, sep, values = raw.partition("=")
    if not sep or not key or not values:
        raise argparse.ArgumentTypeError(f"expected KEY=V1,V2,..., got '{raw}'")
    return key, [_entity_value(value) for value in values.split(",")]


def _entity_value(value: str) -> int | str:
    # Zero-padded ids such as "007" are string keys, not integers.
    digits = value.removeprefix("-")
    if not digits.isdigit() or (len(digits) > 1 and digits.startswith("0")):
        return value
    return int(value)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="featurestore", description="FeatureStore manifest tooling"
    )
    parser.add_argument("--log-level", default=settings.log_level)
    parser.add_argument("--log-format", default=settings.log_format, choices=["json", "console"])
    parser.add_argument("--namespace", default=None, help="Namespace for manifests without one")
    sub = parser.add_subparsers(dest="command", required=True)

    validate = sub.add_parser("validate", help="Validate a manifest bundle")
    validate.add_argument("manifest", type=Path)

    render = sub.add_parser("render", help="Print the resolved feature_store.yaml")
    render.add_argument("manifest", type=Path)
    render.add_argument("--name", default=None, help="FeatureStore to render")

    fetch = sub.add_parser("get-online-features", help="Query the online feature server")
    fetch.add_argument("--url", default=settings.feature_server_url)
    fetch.add_argument("--entity", action="append", type=_parse_entity, required=True)
    fetch.add_argument("--feature", action="append", required=True, help="view:feature")
    fetch.add_argument("--full-feature-names", action="store_true")
    return parser


def _validate(args: argparse.Namespace) -> int:
    bundle = load_manifests(args.manifest, default_namespace=args.namespace)
    problems = bundle.validate()
    for problem in problems:
        print(problem, file=sys.stderr)
    if problems:
        return 1
    print(f"{args.manifest}: {len(bundle.feature_stores)} FeatureStore(s) valid")
    return 0


def _render(args: argparse.Namespace) -> int:
    bundle = load_manifests(args.manifest, default_namespace=args.namespace)
    resource = bundle.get(args.name)
    config = render_repo_config(resource, bundle.resolver())
    sys.stdout.write(dump_repo_config(config))
    return 0


async def _fetch(args: argparse.Namespace) -> int:
    request = OnlineFeaturesRequest(
        entities=dict(args.entity),
        features=args.feature,
        full_feature_names=args.full_feature_names,
    )
    async with FeatureServerClient(args.url) as client:
        response = await client.get_online_features(request)
    print(json.dumps(response.model_dump(mode="json"), indent=2))
    return 0


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_format)

    try:
        if args.command == "validate":
            code = _validate(args)
        elif args.command == "render":
            code = _render(args)
        else:
            code = asyncio.run(_fetch(args))
    except (FeatureStoreConfigError, LookupError, ValueError, OSError) as e:
        logger.error("command_failed", command=args.command, error=str(e))
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)
    sys.exit(code)
