from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator, Iterable, Tuple

import msgspec


class FIMRequest(msgspec.Struct, frozen=True):
    """A fill-in-middle request: produce the text between *prefix* and *suffix*."""

    prefix: str
    suffix: str
    stop_tokens: Tuple[str, ...] = ()


class CompletionBackend(ABC):
    """Abstract base class for language-model completion services.

    The engine does not care which provider sits behind a backend; it only
    relies on fill-in-middle semantics and on the stop-sequence contract:
    generation ends *before* the first occurrence of any stop token.

    Cancellation is cooperative and native: the service runs :meth:`stream`
    inside an :class:`asyncio.Task` and cancels that task when the
    prediction is evicted.  Implementations should let
    :class:`asyncio.CancelledError` propagate after releasing their
    resources.  Provider failures are reported by raising
    :class:`~autotab.src.autocomplete.errors.RequestError`.
    """

    name: str = "backend"

    @abstractmethod
    def stream(self, request: FIMRequest) -> AsyncIterator[str]:
        """Yield the completion as text chunks, in order."""

    async def complete(self, request: FIMRequest) -> str:
        """Collect the whole completion.  Backends without streaming may
        override this and :meth:`stream` alike."""

        parts = []
        async for chunk in self.stream(request):
            parts.append(chunk)
        return "".join(parts)


def apply_stop_tokens(text: str, stop_tokens: Iterable[str]) -> str:
    """Cut *text* before the earliest occurrence of any stop token."""

    end = len(text)
    for token in stop_tokens:
        if not token:
            continue
        idx = text.find(token)
        if idx != -1:
            end = min(end, idx)
    return text[:end]
