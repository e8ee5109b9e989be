"""CLI entrypoints for codehealth commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from .config import STORE_DIRNAME, ConfigError, load_config
from .errors import CodeHealthError
from .ingestion import RepositoryIngestor
from .logging import configure_logging
from .orchestrator import AnalysisOrchestrator
from .progress import LoggingProgressSink
from .stores import JsonStore


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


def _add_repository_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the repository root (defaults to current directory).",
    )
    parser.add_argument(
        "--store",
        type=Path,
        default=None,
        help="Directory holding analysis results (defaults to <path>/.codehealth).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Configuration file to use instead of <path>/.codehealth.yml.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codehealth",
        description="Analyze repository sources for dependencies, complexity and size.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Analyze a repository and print its metrics.",
    )
    _add_verbose_option(analyze_parser, suppress_default=True)
    _add_repository_options(analyze_parser)
    analyze_parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of files analyzed concurrently.",
    )

    graph_parser = subparsers.add_parser(
        "graph",
        help="Print the dependency graph of the latest analysis.",
    )
    _add_verbose_option(graph_parser, suppress_default=True)
    _add_repository_options(graph_parser)

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="0.0.0.0", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for codehealth commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "serve":
        configure_logging(verbose=bool(args.verbose))
        from .service.app import run_service

        run_service(host=args.host, port=args.port)
        return

    root = Path(args.path).expanduser().resolve()
    try:
        config = load_config(args.config or root)
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")
    configure_logging(
        verbose=bool(args.verbose) or config.logging.verbose,
        log_file=config.logging.log_file,
    )
    if getattr(args, "workers", None):
        config.analyzers.workers = max(1, args.workers)

    store = JsonStore(args.store or root / STORE_DIRNAME)
    ingestor = RepositoryIngestor(store, config)
    orchestrator = AnalysisOrchestrator(store, config=config, progress=LoggingProgressSink())

    if args.command == "analyze":
        try:
            repository = ingestor.register_directory(root.name, root)
            run = orchestrator.analyze_repository(repository.id)
        except CodeHealthError as exc:
            parser.exit(1, f"codehealth analyze failed: {exc}\nRun with --verbose for more details.\n")
        _print_json(run.metrics.to_dict())
    elif args.command == "graph":
        repository = store.find_repository_by_path(str(root))
        if repository is None:
            parser.exit(1, f"No analysis found for {root}. Run `codehealth analyze` first.\n")
        try:
            graph = orchestrator.get_dependency_graph(repository.id)
        except CodeHealthError as exc:
            parser.exit(1, f"codehealth graph failed: {exc}\n")
        _print_json(graph.to_dict())
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


if __name__ == "__main__":
    main(sys.argv[1:])
