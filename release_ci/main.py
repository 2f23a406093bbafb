"""Release CI entry point: dispatch to the homebrew, release-notes, and checksums actions."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Callable
from pathlib import Path

import httpx
from loguru import logger

from release_actions.config import ActionInputs
from release_actions.core.exceptions import ReleaseActionError
from release_actions.logging_setup import configure_logging
from release_ci import checksums, homebrew, release_notes

ACTIONS: dict[str, tuple[tuple[str, ...], Callable[[ActionInputs], dict[str, str]], str]] = {
    "homebrew": (homebrew.INPUTS, homebrew.run, "Render a Homebrew formula and commit it to a tap"),
    "release-notes": (release_notes.INPUTS, release_notes.run, "Generate Markdown release notes"),
    "checksums": (checksums.INPUTS, checksums.run, "Compute checksums for files and URLs"),
}


def _dest(input_name: str) -> str:
    return input_name.replace("-", "_")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="release-ci", description="Release pipeline actions")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML file with default inputs (input name -> value)",
    )
    sub = p.add_subparsers(dest="action", required=True)

    for action, (inputs, _run, help_text) in ACTIONS.items():
        sp = sub.add_parser(action, help=help_text)
        for name in inputs:
            sp.add_argument(
                f"--{name}",
                dest=_dest(name),
                default=None,
                help=f"'{name}' input (overrides INPUT_{name.upper()})",
            )
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(debug=args.debug)

    inputs_names, run, _help = ACTIONS[args.action]
    overrides = {name: getattr(args, _dest(name)) for name in inputs_names}

    try:
        inputs = ActionInputs.load(overrides=overrides, config_path=args.config)
        run(inputs)
    except (ReleaseActionError, httpx.HTTPError, OSError) as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
