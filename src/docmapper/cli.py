"""CLI entry point for docmapper index management."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from docmapper.adapters.base.exceptions import AdapterError
from docmapper.adapters.base.registry import AdapterNotFoundError
from docmapper.config.settings import Settings
from docmapper.core.manager import DocumentManager
from docmapper.models.search import SearchDescriptor
from docmapper.observability.logging import setup_logging


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # Load settings
    if args.config:
        config_path = Path(args.config)
        if not config_path.exists():
            print(f"Error: Config file not found: {config_path}", file=sys.stderr)
            sys.exit(1)
        settings = Settings.from_yaml(config_path)
    else:
        settings = Settings()

    # Apply CLI overrides
    if args.adapter:
        settings.engine.adapter = args.adapter
    if args.base_index:
        settings.engine.base_index = args.base_index
    if args.log_level:
        settings.observability.log_level = args.log_level

    setup_logging(settings.observability)

    query: dict[str, Any] = {}
    if getattr(args, "query", None):
        try:
            query = json.loads(args.query)
        except json.JSONDecodeError as e:
            print(f"Error: --query is not valid JSON: {e}", file=sys.stderr)
            sys.exit(1)

    try:
        asyncio.run(_run(args, settings, query))
    except (AdapterError, AdapterNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


async def _run(args: argparse.Namespace, settings: Settings, query: dict[str, Any]) -> None:
    command = args.command
    async with DocumentManager.from_settings(settings) as manager:
        if command == "create-index":
            for index in await manager.create_index():
                print(f"created {index}")
        elif command == "drop-index":
            for index in await manager.drop_index():
                print(f"dropped {index}")
        elif command == "count":
            print(await manager.count(args.kind, SearchDescriptor(query=query)))
        elif command == "health":
            health = await manager.health_check()
            print(health.model_dump_json(indent=2))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docmapper",
        description="docmapper — Object-document mapper for OpenSearch and Elasticsearch",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to YAML configuration file",
    )
    parser.add_argument(
        "--adapter",
        type=str,
        default=None,
        help="Engine adapter name (overrides config)",
    )
    parser.add_argument(
        "--base-index",
        type=str,
        default=None,
        help="Base index name (overrides config)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        default=None,
        help="Log level (overrides config)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"docmapper {_get_version()}",
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("create-index", help="Create an index for every configured schema")
    commands.add_parser("drop-index", help="Delete the index of every configured schema")
    commands.add_parser("health", help="Report engine health")
    count = commands.add_parser("count", help="Count documents of a kind")
    count.add_argument("kind", help="Document kind")
    count.add_argument("--query", type=str, default=None, help="Query DSL clause as JSON")
    return parser


def _get_version() -> str:
    """Get the package version."""
    try:
        from docmapper import __version__

        return __version__
    except ImportError:
        return "unknown"


if __name__ == "__main__":
    main()
