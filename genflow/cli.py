# genflow/cli.py
"""CLI entry point for genflow.

Usage:
    # Build the graph for a settings file and print it as JSON
    python -m genflow build settings.yaml

    # Override settings, write YAML to a file
    python -m genflow build settings.yaml --set iterations=4 --set should_randomize_seed=false \
        --format yaml --output graph.yaml

    # Check the graph for a settings file
    python -m genflow validate settings.yaml

    # Mermaid diagram
    python -m genflow visualize settings.yaml

    # List templates
    python -m genflow templates
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

logger = logging.getLogger(__name__)


def _add_graph_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("config", type=str, help="Settings file (.yaml or .json)")
    parser.add_argument(
        "--set", dest="overrides", action="append", default=[], metavar="KEY=VALUE",
        help="Override a setting (dotlist, repeatable)",
    )
    parser.add_argument("--template", type=str, default="txt2img", help="Workflow template")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="genflow",
        description="genflow — text-to-image invocation graph builder",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # === BUILD ===
    build_parser_ = subparsers.add_parser("build", help="Build a graph from settings")
    _add_graph_args(build_parser_)
    build_parser_.add_argument("--format", type=str, default="json", choices=["json", "yaml"])
    build_parser_.add_argument("--output", type=str, default=None, help="Write to file instead of stdout")

    # === VALIDATE ===
    validate_parser = subparsers.add_parser("validate", help="Build and check a graph")
    _add_graph_args(validate_parser)

    # === VISUALIZE ===
    visualize_parser = subparsers.add_parser("visualize", help="Print a Mermaid diagram")
    _add_graph_args(visualize_parser)

    # === TEMPLATES ===
    subparsers.add_parser("templates", help="List available templates")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "templates":
        return _cmd_templates()

    try:
        graph = _build_graph(args)
    except (OSError, KeyError, ValueError, ValidationError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if args.command == "build":
        return _cmd_build(graph, args)
    if args.command == "validate":
        return _cmd_validate(graph)
    if args.command == "visualize":
        print(graph.visualize())
        return 0
    return 2


def _build_graph(args):
    from .core.config import load_generation_config
    from .core.graph.templates import get_template

    builder = get_template(args.template)
    config = load_generation_config(args.config, args.overrides)
    logger.debug(f"Building '{args.template}' graph from {args.config}")
    return builder(config)


def _cmd_build(graph, args) -> int:
    """Print or write the wire form of the graph."""
    if args.format == "yaml":
        text = graph.to_yaml()
    else:
        text = graph.to_json()

    if args.output:
        path = Path(args.output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text if text.endswith("\n") else text + "\n")
        print(f"Wrote {len(graph.nodes)} nodes, {len(graph.edges)} edges to {path}")
    else:
        print(text)
    return 0


def _cmd_validate(graph) -> int:
    errors = graph.validate()
    if errors:
        for error in errors:
            print(f"  - {error}", file=sys.stderr)
        return 1
    print(f"OK: {len(graph.nodes)} nodes, {len(graph.edges)} edges")
    return 0


def _cmd_templates() -> int:
    from .core.graph.templates import describe_templates

    for name, description in describe_templates().items():
        print(f"{name:<12}{description}".rstrip())
    return 0


if __name__ == "__main__":
    sys.exit(main())
