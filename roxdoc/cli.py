"""CLI entrypoints for roxdoc commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import ConfigError
from .errors import BuildError, RoxdocError
from .logging import configure_logging
from .lookup import Ambiguous, NotFound, Scope
from .orchestrator import Orchestrator


def _add_logging_options(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    """Logging flags, accepted both before and after the subcommand."""
    flag_default: object = argparse.SUPPRESS if suppress_default else False
    path_default: object = argparse.SUPPRESS if suppress_default else None
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=flag_default,
        help="Increase log verbosity for troubleshooting.",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=flag_default,
        help="Only report warnings and errors.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=path_default,
        help="Also write debug logs to this file.",
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the package root (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="roxdoc",
        description="Compile structured source comments into reference documentation.",
    )
    _add_logging_options(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser(
        "build",
        help="Generate Rd files, NAMESPACE and collation metadata.",
    )
    _add_logging_options(build_parser, suppress_default=True)
    _add_path_argument(build_parser)
    build_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compile and report without writing any file.",
    )

    lookup_parser = subparsers.add_parser(
        "lookup",
        help="Print the rendered topic for a name, ns?name or generic(types) query.",
    )
    _add_logging_options(lookup_parser, suppress_default=True)
    lookup_parser.add_argument("query", help="Lookup query, e.g. arrange or show(numeric).")
    lookup_parser.add_argument(
        "--path",
        default=".",
        help="Path to the package root (defaults to current directory).",
    )
    lookup_parser.add_argument(
        "--scope",
        choices=[scope.value for scope in Scope],
        default=Scope.SOURCE.value,
        help="Look up topics in the source tree or in the last build's topic store.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the lookup service with a resident resolver.",
    )
    _add_logging_options(serve_parser, suppress_default=True)
    _add_path_argument(serve_parser)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for roxdoc commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), quiet=bool(args.quiet), log_file=args.log_file)

    orchestrator = Orchestrator()

    if args.command == "build":
        dry_run = bool(getattr(args, "dry_run", False))
        try:
            result = orchestrator.run_build(args.path, dry_run=dry_run)
        except BuildError as exc:
            parser.exit(1, f"{exc}\nSee the messages above for details.\n")
        except (FileNotFoundError, NotADirectoryError, ConfigError) as exc:
            parser.exit(1, f"{exc}\n")
        except RoxdocError as exc:
            parser.exit(1, f"roxdoc build failed: {exc}\n")
        message = f"Compiled {len(result.topics)} topics; {len(result.written)} files written"
        if result.removed:
            message += f", {len(result.removed)} removed"
        if dry_run:
            message += " (dry-run)"
        print(message)
        for path in result.written:
            print(f"  {_relativize(path)}")
    elif args.command == "lookup":
        try:
            resolver = orchestrator.resolver(args.path)
            outcome = resolver.lookup(args.query, Scope(args.scope))
        except (FileNotFoundError, NotADirectoryError, ConfigError) as exc:
            parser.exit(1, f"{exc}\n")
        except RoxdocError as exc:
            parser.exit(1, f"roxdoc lookup failed: {exc}\n")
        if isinstance(outcome, NotFound):
            parser.exit(1, f"No topic matches '{outcome.query}'\n")
        if isinstance(outcome, Ambiguous):
            candidates = "\n".join(f"  {name}" for name in outcome.candidates)
            parser.exit(1, f"'{outcome.query}' is ambiguous; candidates:\n{candidates}\n")
        sys.stdout.write(outcome.text)
    elif args.command == "serve":
        from .service import run_service

        try:
            run_service(args.path, host=args.host, port=args.port)
        except ConfigError as exc:
            parser.exit(1, f"{exc}\n")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
