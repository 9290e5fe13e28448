"""CLI entrypoints for dotbot-awareness operations."""

from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path
from typing import Any, Dict

from .health import LEVELS
from .logging import configure_logging
from .operations import build_envelope, dispatch


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_path_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--path",
        default=".",
        help="Any path inside the repository (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dotbot-awareness",
        description="Inspect solution structure and artifact integrity of a managed repository.",
    )
    _add_verbose_option(parser)
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors.")
    parser.add_argument("--log-file", type=Path, help="Also write debug logs to this file.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    structure_parser = subparsers.add_parser("structure", help="List discovered projects with merged metadata.")
    _add_verbose_option(structure_parser, suppress_default=True)
    _add_path_option(structure_parser)
    structure_parser.add_argument("--type", dest="project_type", help="Only list projects of this type.")

    get_parser = subparsers.add_parser("project", help="Show one project by name or alias.")
    _add_verbose_option(get_parser, suppress_default=True)
    _add_path_option(get_parser)
    get_parser.add_argument("name")

    register_parser = subparsers.add_parser("register", help="Create or update a registry entry.")
    _add_verbose_option(register_parser, suppress_default=True)
    _add_path_option(register_parser)
    register_parser.add_argument("name")
    register_parser.add_argument("--alias")
    register_parser.add_argument("--summary")
    register_parser.add_argument("--tag", dest="tags", action="append", help="Repeat for multiple tags.")
    register_parser.add_argument("--owner")

    unregister_parser = subparsers.add_parser("unregister", help="Remove a registry entry.")
    _add_verbose_option(unregister_parser, suppress_default=True)
    _add_path_option(unregister_parser)
    unregister_parser.add_argument("name")

    frontmatter_parser = subparsers.add_parser("frontmatter", help="Parse one artifact's front-matter.")
    _add_verbose_option(frontmatter_parser, suppress_default=True)
    _add_path_option(frontmatter_parser)
    frontmatter_parser.add_argument("file")

    references_parser = subparsers.add_parser("references", help="Resolve one artifact's references.")
    _add_verbose_option(references_parser, suppress_default=True)
    _add_path_option(references_parser)
    references_parser.add_argument("file")

    health_parser = subparsers.add_parser("health", help="Run a health check.")
    _add_verbose_option(health_parser, suppress_default=True)
    _add_path_option(health_parser)
    health_parser.add_argument("--level", choices=LEVELS, default="standard")

    return parser


def _request_for(args: argparse.Namespace) -> tuple[str, Dict[str, Any]]:
    request: Dict[str, Any] = {"path": args.path}
    if args.command == "structure":
        if args.project_type:
            request["type"] = args.project_type
        return "solution.structure", request
    if args.command == "project":
        request["name"] = args.name
        return "solution.project.get", request
    if args.command == "register":
        request.update(
            {"name": args.name, "alias": args.alias, "summary": args.summary, "tags": args.tags, "owner": args.owner}
        )
        return "solution.project.register", request
    if args.command == "unregister":
        request["name"] = args.name
        return "solution.project.unregister", request
    if args.command == "frontmatter":
        request["file"] = args.file
        return "artifact.frontmatter", request
    if args.command == "references":
        request["file"] = args.file
        return "artifact.references", request
    request["level"] = args.level
    return "solution.health_check", request


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for dotbot-awareness commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), quiet=args.quiet, log_file=args.log_file)

    operation, request = _request_for(args)
    started = time.monotonic()
    result = dispatch(operation, request)
    envelope = build_envelope(operation, result, started)
    print(json.dumps(envelope, indent=2, default=str))
    if result.status == "error":
        parser.exit(1)


if __name__ == "__main__":
    main(sys.argv[1:])
