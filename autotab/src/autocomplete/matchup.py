"""Decide whether a cached prediction still applies to the current prefix.

The user keeps typing after a prediction was requested.  As long as
``stored prefix + predicted text`` still starts with what is in the buffer
now, the prediction remains valid and only its not-yet-typed tail should be
shown.  Text is normalised before comparing (trailing whitespace collapsed,
indentation stripped) so that re-indenting or adding trailing spaces does not
throw the cached prediction away.

All returned offsets refer to the *raw* ``prediction.insert_text``.
"""

from __future__ import annotations

import re
from typing import NamedTuple, Optional

from .context import LF
from .logger import VERBOSE, init_logger
from .prediction import Prediction

logger = init_logger(__name__)

_LEADING_WHITESPACE = re.compile(r"^\s+", re.MULTILINE)


class MatchupBounds(NamedTuple):
    start_line: int
    start_character: int
    start_index: int


NO_NEW_TYPING = MatchupBounds(0, 0, 0)


def remove_left_tabs_and_trim_ends(s: str) -> str:
    """Normalise text for cache comparisons.

    Trailing whitespace is dropped, except that a single newline survives if
    the trailing run contained one.  Leading whitespace of every line is
    removed, which also collapses blank lines.
    """

    trimmed = s.rstrip()
    if LF in s[len(trimmed):]:
        s = trimmed + LF
    else:
        s = trimmed
    return _LEADING_WHITESPACE.sub("", s)


def get_last_line(s: str) -> str:
    return s[s.rfind(LF) + 1:]


def get_index(s: str, line: int, character: int) -> int:
    """Flat index into *s* of (*line*, *character*)."""

    return len(LF.join(s.split(LF)[:line])) + (1 if line > 0 else 0) + character


def get_autocompletion_matchup(prefix: str, prediction: Prediction) -> Optional[MatchupBounds]:
    """Return where the untyped part of *prediction* starts, or ``None``.

    Pure function of its inputs.
    """

    trimmed_current_prefix = remove_left_tabs_and_trim_ends(prefix)
    trimmed_completion_prefix = remove_left_tabs_and_trim_ends(prediction.prefix)

    # The buffer may not have lost text relative to the stored prefix.
    if len(trimmed_current_prefix) < len(trimmed_completion_prefix):
        return None

    # Joined: a prefix ending in a space still meets the predicted text
    # ("x = " + "foo").  Per part: trailing whitespace before the prefix's
    # last newline is trimmed ("x = 1; \n").
    trimmed_full_completion = remove_left_tabs_and_trim_ends(prediction.prefix + prediction.insert_text)
    trimmed_parts = trimmed_completion_prefix + remove_left_tabs_and_trim_ends(prediction.insert_text)
    if not (trimmed_full_completion.startswith(trimmed_current_prefix)
            or trimmed_parts.startswith(trimmed_current_prefix)):
        return None

    line_start = trimmed_current_prefix.count(LF) - trimmed_completion_prefix.count(LF)
    if line_start < 0:
        logger.error("matchup for prediction %d: no line found", prediction.id)
        return None

    middle_lines = prediction.insert_text.split(LF)
    if line_start >= len(middle_lines):
        logger.warning(
            "matchup for prediction %d: line %d outside the %d-line prediction",
            prediction.id, line_start, len(middle_lines))
        return None

    # Last lines keep their trailing whitespace; indentation is ignored.
    current_prefix_line = get_last_line(prefix).lstrip()
    completion_prefix_line = get_last_line(prediction.prefix).lstrip() if line_start == 0 else ""
    full_completion_line = completion_prefix_line + middle_lines[line_start]

    char_match_idx = full_completion_line.find(current_prefix_line)
    if char_match_idx < 0:
        # Trailing whitespace that the prediction does not contain.
        current_prefix_line = current_prefix_line.rstrip()
        char_match_idx = full_completion_line.find(current_prefix_line)
    if char_match_idx < 0:
        logger.warning(
            "matchup for prediction %d: found character with negative index; "
            "this should never happen", prediction.id)
        return None

    character = max(0, char_match_idx + len(current_prefix_line) - len(completion_prefix_line))
    start_index = get_index(prediction.insert_text, line_start, character)

    if VERBOSE:
        logger.debug(
            "matchup for prediction %d: line=%d char=%d index=%d",
            prediction.id, line_start, character, start_index)

    return MatchupBounds(line_start, character, start_index)
