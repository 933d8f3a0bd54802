"""Clean up raw model output before it is stored on a prediction."""

from __future__ import annotations

FENCE = "```"


def extract_code_from_regular(text: str) -> str:
    """Return the body of a markdown code fence wrapping *text*.

    Chat-tuned models sometimes answer a fill-in-middle request with a fenced
    block.  Only a fence at the very start of the answer is unwrapped; an
    unterminated fence (truncated stream) yields everything after its
    opening line.
    """

    stripped = text.lstrip()
    if not stripped.startswith(FENCE):
        return text

    # Skip the opening fence together with its language tag.
    newline = stripped.find("\n")
    if newline == -1:
        return ""
    body = stripped[newline + 1:]

    end = body.find(FENCE)
    if end == -1:
        return body
    body = body[:end]
    if body.endswith("\n"):
        body = body[:-1]
    return body


def process_start_and_end_spaces(text: str) -> str:
    """Trim *text*, keeping one leading and one trailing space if present."""

    text = extract_code_from_regular(text)
    if not text.strip():
        return ""

    has_leading_space = text.startswith(" ")
    has_trailing_space = text.endswith(" ")

    return (" " if has_leading_space else "") + text.strip() + (" " if has_trailing_space else "")
