"""Prediction records and their request state machine.

A :class:`Prediction` is created when the service dispatches a model request
and lives in the per-document :class:`~.cache.LRUCache` until it is evicted,
accepted or superseded.  Its status moves exactly once::

    pending --> finished      (model returned text)
    pending --> error         (failure, timeout or cancellation)

Both terminal states are final.  Any number of keystroke handlers may await
the same prediction through :meth:`Prediction.wait`; all of them observe the
single :class:`RequestResult` that resolved it.
"""

from __future__ import annotations

import asyncio
import enum
import time
from typing import Optional

import msgspec

from .logger import init_logger

logger = init_logger(__name__)


class PredictionKind(str, enum.Enum):
    SINGLE_LINE_FILL_MIDDLE = "single-line-fill-middle"
    SINGLE_LINE_REDO_SUFFIX = "single-line-redo-suffix"
    MULTI_LINE_START_ON_NEXT_LINE = "multi-line-start-on-next-line"
    DO_NOT_PREDICT = "do-not-predict"


class PredictionStatus(str, enum.Enum):
    PENDING = "pending"
    FINISHED = "finished"
    ERROR = "error"


class RequestOutcome(str, enum.Enum):
    SUCCESS = "success"
    ERROR = "error"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


class RequestResult(msgspec.Struct, frozen=True):
    """How a model request ended."""

    outcome: RequestOutcome
    text: str = ""
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome is RequestOutcome.SUCCESS


class Prediction:
    """Mutable record for one model request and its (postprocessed) text."""

    __slots__ = (
        "id",
        "prefix",
        "suffix",
        "model_prefix",
        "model_suffix",
        "kind",
        "created_at",
        "completed_at",
        "status",
        "request_task",
        "insert_text",
        "raw_text",
        "newline_budget_used",
        "result",
        "_waiter",
    )

    def __init__(
        self,
        id: int,
        prefix: str,
        suffix: str,
        model_prefix: str,
        model_suffix: str,
        kind: PredictionKind,
        created_at: Optional[float] = None,
    ):
        self.id = id
        # Buffer text at creation time; never rewritten afterwards.
        self.prefix = prefix
        self.suffix = suffix
        # Text actually sent to the model (windowed, possibly with context).
        self.model_prefix = model_prefix
        self.model_suffix = model_suffix
        self.kind = kind

        self.created_at = time.monotonic() if created_at is None else created_at
        self.completed_at: Optional[float] = None

        self.status = PredictionStatus.PENDING
        self.request_task: Optional[asyncio.Task] = None
        self.insert_text = ""
        self.raw_text = ""
        self.newline_budget_used = 0

        self.result: Optional[RequestResult] = None
        self._waiter: Optional[asyncio.Future] = None

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return (
            f"Prediction(id={self.id}, kind={self.kind.value}, "
            f"status={self.status.value}, insert_text={self.insert_text!r})"
        )

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------
    @property
    def is_pending(self) -> bool:
        return self.status is PredictionStatus.PENDING

    def finish(self, text: str, completed_at: Optional[float] = None) -> bool:
        """``pending -> finished``.  Returns ``False`` if already terminal."""

        if not self.is_pending:
            logger.debug("prediction %d already %s; ignoring result", self.id, self.status.value)
            return False

        self.insert_text = text
        self.status = PredictionStatus.FINISHED
        self._resolve(RequestResult(RequestOutcome.SUCCESS, text=text), completed_at)
        return True

    def fail(
        self,
        outcome: RequestOutcome,
        message: str = "",
        completed_at: Optional[float] = None,
    ) -> bool:
        """``pending -> error``.  Returns ``False`` if already terminal."""

        if outcome is RequestOutcome.SUCCESS:
            raise ValueError("fail() needs a non-success outcome")
        if not self.is_pending:
            logger.debug("prediction %d already %s; ignoring %s", self.id, self.status.value, outcome.value)
            return False

        self.status = PredictionStatus.ERROR
        self._resolve(RequestResult(outcome, message=message), completed_at)
        return True

    def cancel(self) -> None:
        """Request cancellation of the in-flight model call.

        No-op once the request has finished; safe to call repeatedly.  The
        request task itself performs the ``pending -> error`` transition when
        the cancellation lands.
        """

        task = self.request_task
        if self.is_pending and task is not None and not task.done():
            task.cancel()

    async def wait(self) -> RequestResult:
        """Wait for the request to resolve.

        Cancelling the caller does not cancel the shared result.
        """

        if self.result is not None:
            return self.result
        if self._waiter is None:
            self._waiter = asyncio.get_running_loop().create_future()
        return await asyncio.shield(self._waiter)

    def _resolve(self, result: RequestResult, completed_at: Optional[float]) -> None:
        self.result = result
        self.completed_at = time.monotonic() if completed_at is None else completed_at
        if self._waiter is not None and not self._waiter.done():
            self._waiter.set_result(result)

    # ------------------------------------------------------------------
    # Streaming helpers
    # ------------------------------------------------------------------
    def append_text(self, chunk: str, max_newlines: int) -> bool:
        """Accumulate a streamed chunk into :attr:`raw_text`.

        :attr:`insert_text` stays empty until the request finishes.  Returns
        ``True`` once more than *max_newlines* line breaks have arrived; the
        raw text is then cut back to its last newline and the caller should
        stop reading.
        """

        self.raw_text += chunk
        self.newline_budget_used += chunk.count("\n")
        if self.newline_budget_used > max_newlines:
            self.raw_text = self.raw_text[: self.raw_text.rfind("\n")]
            return True
        return False

    @property
    def latency_ms(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.created_at) * 1000.0
