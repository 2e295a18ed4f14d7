#!/usr/bin/env python3
"""Command line entry point for recalculating and verifying targets."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from .config import AppConfig, ConfigError, load_config
from .core import difficulty, retarget
from .core.header import Header, HeaderError, WindowEntry, load_headers
from .logging import setup_logging

EXIT_OK = 0
EXIT_MISMATCH = 1
EXIT_ERROR = 2


def _int_arg(value: str) -> int:
    try:
        return int(value, 0)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer {value!r}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="retarget", description="DigiShield v3 target recalculation")
    parser.add_argument("--config", type=Path, help="Path to config JSON")
    parser.add_argument("--log-level", help="Log level (debug, info, warning, error)")
    parser.add_argument("--log-file", type=Path, help="Also log to this file")

    sub = parser.add_subparsers(dest="command", required=True)

    recalc = sub.add_parser("recalc", help="Compute the target for the block after a header window")
    recalc.add_argument("headers", type=Path, help="JSON file holding the window, oldest first")

    verify = sub.add_parser("verify", help="Check a claimed target against a header window")
    verify.add_argument("headers", type=Path, help="JSON file holding the window, oldest first")
    verify.add_argument("--target", type=_int_arg, required=True, help="Claimed compact target, e.g. 0x2100ffff")
    return parser


def build_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.log_file:
        overrides["log_file"] = str(args.log_file)
    return overrides


def describe_window(window: list[WindowEntry]) -> dict[str, Any]:
    info: dict[str, Any] = {"size": len(window)}
    heights = [entry.height for entry in window if isinstance(entry, Header)]
    if heights and len(heights) == len(window):
        info["from_height"] = min(heights)
        info["to_height"] = max(heights)
    return info


def cmd_recalc(config: AppConfig, window: list[WindowEntry]) -> int:
    bits = retarget.recalculate_window(window, config.consensus)
    target = difficulty.compact_to_target(bits)
    result = {
        "target": f"{bits:#010x}",
        "target_int": str(target),
        "difficulty": difficulty.target_to_difficulty(bits, config.consensus.max_target_bits) if target else None,
        "window": describe_window(window),
    }
    print(json.dumps(result, indent=2))
    return EXIT_OK


def cmd_verify(config: AppConfig, window: list[WindowEntry], claimed: int) -> int:
    mismatch = retarget.verify(claimed, window, config.consensus)
    expected = claimed if mismatch is None else mismatch.expected
    result = {
        "ok": mismatch is None,
        "claimed": f"{claimed:#010x}",
        "expected": f"{expected:#010x}",
        "window": describe_window(window),
    }
    print(json.dumps(result, indent=2))
    return EXIT_OK if mismatch is None else EXIT_MISMATCH


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = load_config(args.config, overrides=build_overrides(args))
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    log_level = getattr(logging, config.log_level.upper(), logging.INFO)
    logger = setup_logging(config.log_file, level=log_level)
    logger.debug("Consensus parameters %s", config.to_dict()["consensus"])

    try:
        window = load_headers(args.headers)
        if args.command == "recalc":
            return cmd_recalc(config, window)
        return cmd_verify(config, window, args.target)
    except (HeaderError, retarget.RetargetError, difficulty.DifficultyError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
