"""Decide what kind of completion to ask the model for.

Single-line completions keep the editor responsive, so they are the default.
A multi-line continuation is only attempted right after the user accepted a
completion, which supports chained acceptance without over-generating on
every keystroke.
"""

from __future__ import annotations

from typing import List, Tuple

import msgspec

from .context import ALL_LINEBREAK_SYMBOLS, LF, PrefixAndSuffixInfo
from .prediction import PredictionKind

DEFAULT_WINDOW_LINES = 25
REDO_SUFFIX_MAX_CHARS = 3


class CompletionOptions(msgspec.Struct, frozen=True):
    """Outcome of classification for one request.  Recomputed every time."""

    prediction_kind: PredictionKind
    should_generate: bool
    model_prefix: str
    model_suffix: str
    stop_tokens: Tuple[str, ...]


def remove_all_whitespace(s: str) -> str:
    return "".join(s.split())


def window_prefix_and_suffix(
    prefix: str,
    suffix: str,
    max_prefix_lines: int = DEFAULT_WINDOW_LINES,
    max_suffix_lines: int = DEFAULT_WINDOW_LINES,
) -> Tuple[str, str, List[str]]:
    """Keep the last *max_prefix_lines* of the prefix and the first
    *max_suffix_lines* of the suffix.  Also returns the windowed suffix lines.
    """

    prefix_lines = prefix.split(LF)[-max_prefix_lines:]
    suffix_lines = suffix.split(LF)[:max_suffix_lines]
    return LF.join(prefix_lines), LF.join(suffix_lines), suffix_lines


def get_completion_options(
    info: PrefixAndSuffixInfo,
    just_accepted_autocompletion: bool,
    *,
    max_prefix_lines: int = DEFAULT_WINDOW_LINES,
    max_suffix_lines: int = DEFAULT_WINDOW_LINES,
) -> CompletionOptions:
    prefix, suffix, suffix_lines = window_prefix_and_suffix(
        info.prefix, info.suffix, max_prefix_lines, max_suffix_lines)

    left = info.prefix_to_the_left_of_cursor
    right = info.suffix_to_the_right_of_cursor

    is_line_empty = not left.strip() and not right.strip()
    is_line_prefix_empty = not remove_all_whitespace(left)
    line_suffix_chars = len(remove_all_whitespace(right))

    # Continue on the next line right after an accept.
    if just_accepted_autocompletion and line_suffix_chars == 0:
        return CompletionOptions(
            prediction_kind=PredictionKind.MULTI_LINE_START_ON_NEXT_LINE,
            should_generate=True,
            model_prefix=prefix + LF,
            model_suffix=suffix,
            stop_tokens=(LF + LF,),
        )

    if is_line_empty:
        return CompletionOptions(
            prediction_kind=PredictionKind.SINGLE_LINE_FILL_MIDDLE,
            should_generate=True,
            model_prefix=prefix,
            model_suffix=suffix,
            stop_tokens=ALL_LINEBREAK_SYMBOLS,
        )

    # A short tail such as ``);`` is regenerated together with the line.
    if 0 < line_suffix_chars <= REDO_SUFFIX_MAX_CHARS:
        rest = suffix_lines[1:]
        return CompletionOptions(
            prediction_kind=PredictionKind.SINGLE_LINE_REDO_SUFFIX,
            should_generate=True,
            model_prefix=prefix,
            model_suffix=(LF + LF.join(rest)) if rest else "",
            stop_tokens=ALL_LINEBREAK_SYMBOLS,
        )

    # Completing mid-line looks wrong without anything to its left.
    if not is_line_prefix_empty:
        return CompletionOptions(
            prediction_kind=PredictionKind.SINGLE_LINE_FILL_MIDDLE,
            should_generate=True,
            model_prefix=prefix,
            model_suffix=suffix,
            stop_tokens=ALL_LINEBREAK_SYMBOLS,
        )

    return CompletionOptions(
        prediction_kind=PredictionKind.DO_NOT_PREDICT,
        should_generate=False,
        model_prefix=prefix,
        model_suffix=suffix,
        stop_tokens=(),
    )
