"""CLI entrypoints for shapegen commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import ConfigError
from .logging import configure_logging
from .orchestrator import Orchestrator


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


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the project root (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shapegen",
        description="Generate API response declarations from service return shapes.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Write one response declarations module per service.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    _add_path_argument(generate_parser)

    wire_parser = subparsers.add_parser(
        "wire",
        help="Write the controller lookup table from existing declarations.",
    )
    _add_verbose_option(wire_parser, suppress_default=True)
    _add_path_argument(wire_parser)

    rewrite_parser = subparsers.add_parser(
        "rewrite",
        help="Generate declarations and replace response markers in controllers.",
    )
    _add_verbose_option(rewrite_parser, suppress_default=True)
    _add_path_argument(rewrite_parser)
    rewrite_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List the controllers that would change without writing them.",
    )

    build_parser = subparsers.add_parser(
        "build",
        help="Regenerate declarations and wiring when sources changed.",
    )
    _add_verbose_option(build_parser, suppress_default=True)
    _add_path_argument(build_parser)
    build_parser.add_argument(
        "--force",
        action="store_true",
        help="Regenerate even when the outputs look up to date.",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for shapegen commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    orchestrator = Orchestrator()

    try:
        if args.command == "generate":
            count = orchestrator.run_generate(args.path)
            print(f"Generated {count} declaration module(s)")
        elif args.command == "wire":
            count = orchestrator.run_wire(args.path)
            print(f"Wired {count} controller(s)")
        elif args.command == "rewrite":
            outcome = orchestrator.run_rewrite(args.path, dry_run=bool(args.dry_run))
            if outcome.dry_run:
                print("Controllers that would change (dry-run):")
                for path in outcome.changed:
                    print(f"  {_relativize(path)}")
                if not outcome.changed:
                    print("  (none)")
            else:
                print(
                    f"Generated {outcome.declarations} declaration module(s), "
                    f"rewrote {len(outcome.changed)} controller(s)"
                )
        elif args.command == "build":
            result = orchestrator.run_build(args.path, force=bool(args.force))
            if result.ran:
                print(
                    f"Generated {result.declarations} declaration module(s) "
                    f"and wired {result.endpoints} controller(s)"
                )
            elif result.reason == "locked":
                print("Another generation is in progress; skipped")
            else:
                print("Generated responses already up to date")
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except (FileNotFoundError, NotADirectoryError) as exc:
        parser.exit(1, f"{exc}\n")
    except ConfigError as exc:
        parser.exit(1, f"Invalid configuration: {exc}\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
