#!/usr/bin/env python3
"""Unified CLI for watchdogctl -- CI test failure context pipeline."""

import argparse
import logging
import sys

from watchdogctl import __version__
from watchdogctl.config import DEFAULT_WORKDIR, Config


def cmd_validate(config: Config) -> int:
    from watchdogctl.validate import run
    return run(config)


def cmd_collect(config: Config) -> int:
    from watchdogctl.collect import run
    return run(config)


def cmd_prepare(config: Config) -> int:
    from watchdogctl.prepare import run
    return run(config)


def cmd_analyze(config: Config) -> int:
    from watchdogctl.analyze import run
    return run(config)


def cmd_extract(config: Config) -> int:
    from watchdogctl.extract import run
    return run(config)


def cmd_run(config: Config) -> int:
    """Chain all steps: validate -> collect -> prepare -> analyze -> extract."""
    from watchdogctl.analyze import run as analyze_run
    from watchdogctl.collect import run as collect_run
    from watchdogctl.extract import run as extract_run
    from watchdogctl.prepare import run as prepare_run
    from watchdogctl.validate import run as validate_run

    logger = logging.getLogger(__name__)

    for step in (validate_run, collect_run, prepare_run):
        rc = step(config)
        if rc != 0:
            return rc

    # Extraction reports analysis_failed when the agent did not finish
    rc = analyze_run(config)
    if rc != 0:
        logger.warning("Analyze step failed (non-fatal), continuing")

    return extract_run(config)


COMMANDS = {
    "validate": (cmd_validate, "Check credentials and gh CLI access, export max turns"),
    "collect": (cmd_collect, "Gather permissions, issues, PRs, commits, run history and test files"),
    "prepare": (cmd_prepare, "Render context-data.md for the analysis agent"),
    "analyze": (cmd_analyze, "Run the analysis agent over context-data.md"),
    "extract": (cmd_extract, "Write analysis and telemetry outputs to GITHUB_OUTPUT"),
    "run": (cmd_run, "Run the full pipeline: validate -> collect -> prepare -> analyze -> extract"),
}


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--workdir", default=None,
        help=f"Working directory for artifacts (default: {DEFAULT_WORKDIR})",
    )
    common.add_argument(
        "--search-root", default=None,
        help="Directory scanned for test files; agent working directory (default: .)",
    )
    common.add_argument(
        "--model", default=None,
        help="Claude model for the analysis agent (default: sonnet)",
    )
    common.add_argument(
        "--debug", action="store_true", default=None,
        help="Enable debug logging (verbose output)",
    )

    parser = argparse.ArgumentParser(
        prog="watchdogctl",
        description="CI test failure watchdog -- collects failure context and extracts analysis results",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    for name, (func, help_text) in COMMANDS.items():
        p = subparsers.add_parser(name, help=help_text, parents=[common])
        p.set_defaults(func=func)
    return parser


def main(argv: list[str] | None = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    config = Config.from_env(
        workdir=args.workdir,
        search_root=args.search_root,
        model=args.model,
        debug=args.debug,
    )

    level = logging.DEBUG if config.debug else logging.INFO
    logging.basicConfig(
        level=level,
        format=(
            "%(message)s" if level == logging.INFO
            else "%(asctime)s %(name)s %(levelname)s %(message)s"
        ),
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    sys.exit(args.func(config))


if __name__ == "__main__":
    main()
