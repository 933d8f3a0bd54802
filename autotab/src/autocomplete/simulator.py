"""Replay a typing session through :class:`~.service.AutocompleteService`.

The simulator types a ground-truth document one character at a time into an
in-memory buffer and asks the service for a completion after every
keystroke.  A shown completion is accepted (applied to the buffer and
reported through ``free_inline_completions``) when it agrees with the
ground truth; otherwise the next character is typed by hand.  With the
default :class:`~.backends.OracleBackend` this measures how much typing the
request/cache/postprocess pipeline saves under a perfect model.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Optional

from .backends import CompletionBackend, OracleBackend
from .config import AutocompleteConfig
from .context import InMemoryDocument, Position
from .service import AutocompleteService

# ---------------------------------------------------------------------------
# ANSI helpers for optional verbose output
# ---------------------------------------------------------------------------

CSI = "\x1b["


def _c(text: str, code: str) -> str:
    return f"{CSI}{code}m{text}{CSI}0m"


GREY = "90"
GREEN = "32"
RED = "31"


# ---------------------------------------------------------------------------
# Results dataclass
# ---------------------------------------------------------------------------


@dataclass
class SimulationResult:
    """Outcome of a replayed typing session.

    Attributes
    ----------
    keystrokes
        Characters typed by hand.
    accepted_chars
        Characters inserted by accepting completions.
    shown_completions / accepted_completions / rejected_completions
        Non-empty completions offered, taken, and skipped because they
        disagreed with the ground truth.
    """

    keystrokes: int
    accepted_chars: int
    shown_completions: int
    accepted_completions: int
    rejected_completions: int
    requests: int
    cache_hits: int
    total_time_ms: float

    @property
    def total_chars(self) -> int:
        return self.keystrokes + self.accepted_chars

    @property
    def coverage(self) -> float:  # noqa: D401 simple
        """Fraction of the document inserted through completions."""
        if not self.total_chars:
            return 0.0
        return self.accepted_chars / self.total_chars

    def __str__(self) -> str:  # pragma: no cover
        return (
            f"keystrokes={self.keystrokes}  accepted={self.accepted_chars}  "
            f"coverage={self.coverage:.1%}  requests={self.requests}"
        )


# ---------------------------------------------------------------------------
# Simulator
# ---------------------------------------------------------------------------


async def simulate_typing(
    ground_truth: str,
    *,
    backend: Optional[CompletionBackend] = None,
    config: Optional[AutocompleteConfig] = None,
    accept: bool = True,
    uri: str = "replay://document",
    verbose: bool = False,
) -> SimulationResult:
    """Type *ground_truth* and return how the completions performed."""

    backend = backend or OracleBackend(ground_truth)
    config = config or AutocompleteConfig(debounce_ms=0)
    service = AutocompleteService(backend, config)

    document = InMemoryDocument(uri)
    position = Position(0, 0)
    cursor = 0  # index into ground_truth

    keystrokes = accepted_chars = 0
    shown = accepted_completions = rejected = 0

    start = time.perf_counter()
    try:
        while cursor < len(ground_truth):
            completions = await service.provide_inline_completions(document, position)
            completion = completions[0] if completions else None

            if completion is not None and completion.insert_text:
                shown += 1
                text = completion.insert_text
                if accept and completion.range.is_empty and ground_truth.startswith(text, cursor):
                    position = document.apply_edit(completion.range, text)
                    cursor += len(text)
                    accepted_chars += len(text)
                    accepted_completions += 1
                    service.free_inline_completions(document, position, completions)
                    if verbose:
                        print(_c(f"[accept {cursor:5d}]", GREY), _c(repr(text), GREEN))
                    continue

                rejected += 1
                if verbose:
                    print(_c(f"[reject {cursor:5d}]", GREY), _c(repr(text), RED))

            position = document.insert(position, ground_truth[cursor])
            cursor += 1
            keystrokes += 1
    finally:
        service.dispose()
        # Let cancelled request tasks unwind before the loop goes away.
        await asyncio.sleep(0)

    assert document.get_value() == ground_truth, "document diverged from ground truth - bug in simulator logic"

    return SimulationResult(
        keystrokes=keystrokes,
        accepted_chars=accepted_chars,
        shown_completions=shown,
        accepted_completions=accepted_completions,
        rejected_completions=rejected,
        requests=service.stats["requests"],
        cache_hits=service.stats["cache_hits"],
        total_time_ms=(time.perf_counter() - start) * 1e3,
    )
