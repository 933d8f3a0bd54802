#!/usr/bin/env python3
"""Replay a typing session through the autocomplete engine.

Types a document character by character against the oracle backend (which
always answers with the true continuation) and prints how much of the
document arrived through accepted completions::

    python -m autotab.replay --ground path/to/file.py
    python -m autotab.replay --example js --debounce-ms 0 -v

Settings not given on the command line come from ``AUTOTAB_*`` environment
variables (see :class:`~autotab.src.autocomplete.config.AutocompleteConfig`).
"""

from __future__ import annotations

import argparse
import asyncio
import pathlib
import sys
from typing import List

from autotab.src.autocomplete import examples
from autotab.src.autocomplete.config import AutocompleteConfig
from autotab.src.autocomplete.context import normalize_line_endings
from autotab.src.autocomplete.errors import ConfigurationError
from autotab.src.autocomplete.simulator import simulate_typing

EXAMPLES = {
    "python": examples.PYTHON_FIBONACCI,
    "js": examples.JS_TODO_LIST,
}


def main(argv: List[str] | None = None) -> None:  # noqa: D401 – CLI entry-point
    """Entry-point for ``autotab-replay`` and ``python -m autotab.replay``."""

    parser = argparse.ArgumentParser(description="Replay a typing session through autotab")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--ground",
                        type=pathlib.Path,
                        help="Path to the document to type.")
    source.add_argument("--example",
                        choices=sorted(EXAMPLES),
                        default="python",
                        help="Built-in document to type (default: python).")
    parser.add_argument("--debounce-ms",
                        type=int,
                        default=0,
                        help="Debounce period between keystrokes and requests (default: 0).")
    parser.add_argument("--no-accept",
                        action="store_true",
                        help="Never accept completions; only count what is shown.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print every shown completion")

    args = parser.parse_args(argv)

    if args.ground:
        ground_text = normalize_line_endings(args.ground.read_text(encoding="utf-8"))
    else:
        ground_text = EXAMPLES[args.example]

    try:
        settings = AutocompleteConfig.from_env().to_dict()
        settings["debounce_ms"] = args.debounce_ms
        config = AutocompleteConfig.from_dict(settings)
    except ConfigurationError as exc:
        raise SystemExit(f"invalid configuration: {exc}")

    res = asyncio.run(simulate_typing(
        ground_text,
        config=config,
        accept=not args.no_accept,
        verbose=args.verbose,
    ))

    hdr = (
        f"{'chars':>7}  {'typed':>7}  {'accepted':>8}  {'coverage %':>10}"
        f"  {'shown':>6}  {'requests':>8}  {'cache hits':>10}  {'total ms':>10}"
    )
    print(hdr)
    print("-" * len(hdr))
    print(
        f"{res.total_chars:7d}  {res.keystrokes:7d}  {res.accepted_chars:8d}  {res.coverage * 100:10.1f}"
        f"  {res.shown_completions:6d}  {res.requests:8d}  {res.cache_hits:10d}  {res.total_time_ms:10.1f}"
    )


if __name__ == "__main__":
    sys.exit(main())
