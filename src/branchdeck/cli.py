"""Public CLI contract and entrypoint."""

from __future__ import annotations

import argparse
import logging as py_logging
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

from .config import load_config
from .errors import BranchDeckError, ExitCode, user_facing_error
from .logging import LOG_LEVEL_NAMES, configure_logging, default_log_path, normalize_level


def _log_level_type(value: str) -> str:
    normalized = normalize_level(value)
    if normalized not in LOG_LEVEL_NAMES:
        accepted = ", ".join(LOG_LEVEL_NAMES)
        raise argparse.ArgumentTypeError(f"--log-level must be one of: {accepted}")
    return normalized


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="branchdeck")
    parser.add_argument("--repo", type=Path, default=None, help="Repository to browse")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.toml")
    parser.add_argument(
        "--log-level",
        type=_log_level_type,
        default=None,
        help="Overrides log_level from the config file",
    )
    parser.add_argument("--log-file", type=Path, default=None)
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    return parser.parse_args(argv)


def launch_panel(namespace: argparse.Namespace) -> int:
    from branchdeck.ui.app import launch_app

    return launch_app(config_path=namespace.config, repo_path=namespace.repo)


def main(
    argv: Sequence[str] | None = None,
    *,
    launcher: Callable[[argparse.Namespace], int | None] | None = None,
) -> int:
    log_path = default_log_path()
    logger = configure_logging(log_file=log_path)
    parser = build_parser()
    try:
        namespace = parser.parse_args(argv)
    except SystemExit as exc:
        if exc.code not in (None, 0):
            logger.warning("Argument parsing failed with exit code %s", exc.code)
        return int(exc.code or 0)

    if namespace.log_file is not None:
        log_path = namespace.log_file.expanduser()
    level = namespace.log_level or load_config(namespace.config).log_level
    # The panel paints on stdout.
    logger = configure_logging(level=level, log_file=log_path, painted=sys.stdout)

    try:
        logger.debug("Starting branch panel flow")
        result = (launcher or launch_panel)(namespace)
        if isinstance(result, int):
            return result
        return int(ExitCode.SUCCESS)
    except BranchDeckError as exc:
        logger.error(
            "Handled BranchDeckError (code=%s): %s",
            int(exc.code),
            exc.message,
            exc_info=logger.isEnabledFor(py_logging.DEBUG),
        )
        print(user_facing_error(exc.message, hint=exc.hint), file=sys.stderr)
        return int(exc.code)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return int(ExitCode.SUCCESS)
    except Exception:
        logger.exception("Unhandled exception in CLI entrypoint")
        try:
            hint = f"Inspect logs: {log_path}"
            print(user_facing_error("Unexpected runtime failure", hint=hint), file=sys.stderr)
        except Exception:
            pass
        return int(ExitCode.RUNTIME_ERROR)


def run(argv: Sequence[str] | None = None) -> int:
    return main(argv)
