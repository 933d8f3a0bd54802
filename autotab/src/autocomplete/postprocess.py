"""Turn a stored prediction into the exact text (and range) to show.

Models routinely emit more than the user wants: unbalanced closing
brackets, whole extra lines, a copy of the closing punctuation already to the
right of the cursor.  The helpers below compute an exclusive ``[start, end)``
window into ``prediction.insert_text`` and then trim the result:

1. skip leading whitespace the user already typed,
2. skip leading newlines when the cursor sits on a blank line,
3. stop mid-line completions at the first character of the existing suffix
   when that character is a bracket or quote,
4. keep completions single-line when the cursor is at the end of a
   non-blank line,
5. for next-line continuations, drop everything from the first generated line
   that repeats upcoming suffix text,
6. cut at the first closing bracket that has no opener (prefix included).

Redo-suffix completions additionally get a replace range covering the part of
the line they regenerate.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import msgspec
from rapidfuzz.distance import Levenshtein

from .classifier import remove_all_whitespace
from .context import END_OF_LINE, LF, Position, PrefixAndSuffixInfo, Range
from .logger import VERBOSE, init_logger
from .matchup import MatchupBounds
from .prediction import Prediction, PredictionKind

logger = init_logger(__name__)

OPENERS = "([{"
CLOSERS = ")]}"
PAIRS = {")": "(", "}": "{", "]": "["}
SUFFIX_STOP_CHARS = "{}()[]<>`'\""

DEFAULT_SUFFIX_DEDUP_LINES = 10
DEFAULT_SUFFIX_DEDUP_SCORE = 90.0


class InlineCompletion(msgspec.Struct, frozen=True):
    """A candidate edit for the editor: replace *range* with *insert_text*."""

    insert_text: str
    range: Range
    prediction_id: Optional[int] = None


# ---------------------------------------------------------------------------
# Scanners
# ---------------------------------------------------------------------------


def get_is_subsequence(of: str, subsequence: str) -> Tuple[bool, str]:
    """Two-pointer subsequence test.

    Returns ``(is_subsequence, last_matched_char)``; the character is ``""``
    when nothing matched.
    """

    if not subsequence:
        return True, ""
    if not of:
        return False, ""

    idx = 0
    last_match_char = ""
    for ch in of:
        if ch == subsequence[idx]:
            last_match_char = ch
            idx += 1
            if idx == len(subsequence):
                return True, last_match_char
    return False, last_match_char


def get_string_up_to_unbalanced_closing_parenthesis(s: str, prefix: str) -> str:
    """Cut *s* before its first closing bracket that has no opener.

    The bracket stack is seeded from *prefix*, so a closer in *s* that
    matches something still open in the prefix is kept.  Closers in the
    prefix that match nothing are ignored.
    """

    stack: List[str] = []
    for ch in prefix:
        if ch in OPENERS:
            stack.append(ch)
        elif ch in CLOSERS and stack and stack[-1] == PAIRS[ch]:
            stack.pop()

    for i, ch in enumerate(s):
        if ch in OPENERS:
            stack.append(ch)
        elif ch in CLOSERS:
            if not stack or stack.pop() != PAIRS[ch]:
                return s[:i]
    return s


def truncate_at_suffix_duplicate(
    text: str,
    suffix_lines: List[str],
    *,
    max_lines: int = DEFAULT_SUFFIX_DEDUP_LINES,
    min_score: float = DEFAULT_SUFFIX_DEDUP_SCORE,
) -> str:
    """Drop generated lines from the first one that repeats suffix text.

    A generated line repeats a suffix line when it starts with it or when
    their normalised Levenshtein similarity (0-100) reaches
    *min_score*.
    """

    candidates = [line.strip() for line in suffix_lines[:max_lines] if line.strip()]
    if not candidates:
        return text

    generated = text.split(LF)
    for i, line in enumerate(generated):
        line = line.strip()
        if not line:
            continue
        for candidate in candidates:
            if line.startswith(candidate) or Levenshtein.normalized_similarity(line, candidate) * 100.0 >= min_score:
                if VERBOSE:
                    logger.debug("generated line %d repeats suffix line %r", i, candidate)
                return LF.join(generated[:i])
    return text


def preserve_edge_spaces(text: str, keep_trailing: bool) -> str:
    """Collapse edge spaces/tabs to at most one space on each side.

    A trailing space survives only when *keep_trailing* is set (there is text
    after the cursor for it to separate from).
    """

    core = text.strip(" \t")
    if not core:
        return ""
    leading = " " if text[0] in " \t" else ""
    trailing = " " if keep_trailing and text[-1] in " \t" else ""
    return leading + core + trailing


# ---------------------------------------------------------------------------
# Postprocessing
# ---------------------------------------------------------------------------


def postprocess_autocompletion(
    matchup: MatchupBounds,
    prediction: Prediction,
    info: PrefixAndSuffixInfo,
    *,
    suffix_dedup_lines: int = DEFAULT_SUFFIX_DEDUP_LINES,
    suffix_dedup_score: float = DEFAULT_SUFFIX_DEDUP_SCORE,
) -> str:
    left = info.prefix_to_the_left_of_cursor
    right = info.suffix_to_the_right_of_cursor
    generated_middle = prediction.insert_text

    start_idx = matchup.start_index
    end_idx = len(generated_middle)

    # The user already typed the separating space.
    char_to_left_of_cursor = left[-1:]
    if char_to_left_of_cursor in (" ", "\t"):
        rest = generated_middle[start_idx:]
        first_nonspace = len(rest) - len(rest.lstrip(" \t"))
        if first_nonspace < len(rest):
            start_idx += first_nonspace

    # Already on a blank line: do not open with more blank lines.
    if not left.strip() and not right.strip():
        rest = generated_middle[start_idx:]
        start_idx += len(rest) - len(rest.lstrip(LF))

    # Mid-line completion: stop where the existing suffix begins.
    # Redo-suffix completions replace that suffix through their range instead.
    if prediction.kind is PredictionKind.SINGLE_LINE_FILL_MIDDLE and right.strip():
        raw_match_idx = generated_middle[start_idx:].rfind(right.strip()[0])
        if raw_match_idx > -1:
            match_idx = raw_match_idx + start_idx
            if generated_middle[match_idx] in SUFFIX_STOP_CHARS:
                end_idx = min(end_idx, match_idx)

    # End of a non-blank line: show one line only.
    rest_of_line_to_generate = generated_middle[start_idx:].split(LF)[0]
    if left.strip() and not right.strip() and rest_of_line_to_generate.strip():
        raw_newline_idx = generated_middle[start_idx:].find(LF)
        if raw_newline_idx > -1:
            end_idx = min(end_idx, raw_newline_idx + start_idx)

    completion = generated_middle[start_idx:end_idx]

    if prediction.kind is PredictionKind.MULTI_LINE_START_ON_NEXT_LINE:
        completion = truncate_at_suffix_duplicate(
            completion, info.suffix_lines, max_lines=suffix_dedup_lines, min_score=suffix_dedup_score)

    completion = get_string_up_to_unbalanced_closing_parenthesis(completion, info.prefix)

    keep_trailing = bool(right.strip()) and prediction.kind is not PredictionKind.SINGLE_LINE_REDO_SUFFIX
    completion = preserve_edge_spaces(completion, keep_trailing)

    if VERBOSE:
        logger.debug(
            "postprocess prediction %d: window=[%d, %d) -> %r",
            prediction.id, start_idx, end_idx, completion)

    return completion


def to_inline_completions(
    matchup: MatchupBounds,
    prediction: Prediction,
    info: PrefixAndSuffixInfo,
    position: Position,
    *,
    suffix_dedup_lines: int = DEFAULT_SUFFIX_DEDUP_LINES,
    suffix_dedup_score: float = DEFAULT_SUFFIX_DEDUP_SCORE,
) -> List[InlineCompletion]:
    """Postprocess *prediction* and attach the range it replaces."""

    insert_text = postprocess_autocompletion(
        matchup,
        prediction,
        info,
        suffix_dedup_lines=suffix_dedup_lines,
        suffix_dedup_score=suffix_dedup_score,
    )
    range_to_replace = Range.empty(position)

    if prediction.kind is PredictionKind.SINGLE_LINE_REDO_SUFFIX:
        old_suffix = info.suffix_to_the_right_of_cursor
        new_suffix = prediction.insert_text

        # Does the regenerated line carry the same brackets and symbols?
        is_subsequence, last_matching_char = get_is_subsequence(
            of=remove_all_whitespace(new_suffix),
            subsequence=remove_all_whitespace(old_suffix),
        )
        if is_subsequence:
            range_to_replace = Range(position.line, position.column, position.line, END_OF_LINE)
        elif last_matching_char:
            insert_text = insert_text[: insert_text.rfind(last_matching_char) + 1]
            num_chars_to_replace = old_suffix.rfind(last_matching_char) + 1
            range_to_replace = Range(
                position.line, position.column, position.line, position.column + num_chars_to_replace)
        else:
            range_to_replace = Range(
                position.line, position.column, position.line, position.column + len(old_suffix))

    return [InlineCompletion(insert_text=insert_text, range=range_to_replace, prediction_id=prediction.id)]
