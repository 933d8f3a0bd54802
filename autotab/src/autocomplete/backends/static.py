"""Backends that answer from text known in advance.

:class:`StaticTextBackend` replays scripted answers and is what the test
suite runs against.  :class:`OracleBackend` knows the finished document and
always answers with its true continuation, which makes typing replays
deterministic.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Callable, List, Optional, Sequence, Union

from ..errors import RequestError
from ..logger import init_logger
from ..related_context import strip_context_header
from .base import CompletionBackend, FIMRequest, apply_stop_tokens

logger = init_logger(__name__)

Responder = Callable[[FIMRequest], str]

ORACLE_TAIL_CHARS = 256


def _chunks(text: str, size: Optional[int]) -> List[str]:
    if not size or size <= 0:
        return [text]
    return [text[i:i + size] for i in range(0, len(text), size)] or [""]


class StaticTextBackend(CompletionBackend):
    """Scripted completion backend.

    *responses* is a single string (returned for every request), a sequence
    consumed one answer per request, or a callable mapping the request to an
    answer.  An item that is an exception instance is raised instead of
    answered.  Every request is recorded in :attr:`requests`.
    """

    name = "static"

    def __init__(
        self,
        responses: Union[str, Sequence[Union[str, Exception]], Responder],
        *,
        delay_s: float = 0.0,
        chunk_size: Optional[int] = None,
        honor_stop_tokens: bool = True,
    ):
        self._responses = responses
        self._cursor = 0
        self._delay_s = delay_s
        self._chunk_size = chunk_size
        self._honor_stop_tokens = honor_stop_tokens

        self.requests: List[FIMRequest] = []
        self.cancelled = 0

    def _next_response(self, request: FIMRequest) -> str:
        responses = self._responses
        if isinstance(responses, str):
            return responses
        if callable(responses):
            return responses(request)

        if self._cursor >= len(responses):
            raise RequestError("no scripted response left", provider=self.name)
        answer = responses[self._cursor]
        self._cursor += 1
        if isinstance(answer, Exception):
            raise answer
        return answer

    async def stream(self, request: FIMRequest) -> AsyncIterator[str]:
        self.requests.append(request)
        try:
            if self._delay_s:
                await asyncio.sleep(self._delay_s)

            text = self._next_response(request)
            if self._honor_stop_tokens:
                text = apply_stop_tokens(text, request.stop_tokens)

            for chunk in _chunks(text, self._chunk_size):
                yield chunk
                await asyncio.sleep(0)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise


class OracleBackend(StaticTextBackend):
    """Answer every request with the ground truth following its prefix.

    The request prefix is located in the document by its last
    ``ORACLE_TAIL_CHARS`` characters; unknown prefixes get an empty answer.
    """

    name = "oracle"

    def __init__(self, ground_truth: str, **kwargs):
        super().__init__(self._continuation, **kwargs)
        self.ground_truth = ground_truth

    def _continuation(self, request: FIMRequest) -> str:
        prefix = strip_context_header(request.prefix)
        tail = prefix[-ORACLE_TAIL_CHARS:]
        idx = self.ground_truth.find(tail)
        if idx == -1:
            logger.debug("oracle: prefix tail %r not found in ground truth", tail[-40:])
            return ""
        return self.ground_truth[idx + len(tail):]
