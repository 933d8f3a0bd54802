"""Prediction lifecycle orchestration.

:class:`AutocompleteService` is what the editor integration talks to.  On
every keystroke it

1. looks for a cached prediction that still matches the buffer,
2. otherwise waits out the debounce period,
3. bounds the number of in-flight requests per document,
4. classifies the cursor context and dispatches a fill-in-middle request,
5. postprocesses the answer into an :class:`~.postprocess.InlineCompletion`.

Everything runs on one event loop.  Per-document state (cache, debounce
generation, last acceptance time) lives in an explicit map keyed by document
URI and is dropped on :meth:`close_document`.

Failures never reach the editor: every steady-state error degrades to an
empty result for that keystroke.
"""

from __future__ import annotations

import asyncio
import itertools
import math
import time
from collections import Counter
from typing import Callable, Dict, Iterable, List, Optional

from .backends.base import CompletionBackend, FIMRequest
from .cache import LRUCache
from .classifier import get_completion_options, remove_all_whitespace
from .config import AutocompleteConfig
from .context import LF, Position, PrefixAndSuffixInfo, TextDocument, get_document_prefix_and_suffix_info
from .errors import RequestError
from .extract_code import process_start_and_end_spaces
from .logger import VERBOSE, init_logger
from .matchup import NO_NEW_TYPING, MatchupBounds, get_autocompletion_matchup
from .postprocess import InlineCompletion, to_inline_completions
from .prediction import Prediction, PredictionKind, PredictionStatus, RequestOutcome
from .related_context import LanguageFeatures, gather_related_context, with_context_header

logger = init_logger(__name__)


class _DocumentState:
    """Mutable per-document state stored inside the service."""

    __slots__ = (
        "uri",
        "cache",
        "debounce_generation",
        "last_completion_accept",
    )

    def __init__(self, uri: str, max_cache_size: int):
        self.uri = uri
        self.cache: LRUCache[int, Prediction] = LRUCache(max_cache_size, _dispose_prediction)
        self.debounce_generation = 0
        self.last_completion_accept = -math.inf


def _dispose_prediction(prediction: Prediction, _key: int) -> None:
    prediction.cancel()


class AutocompleteService:

    def __init__(
        self,
        backend: CompletionBackend,
        config: Optional[AutocompleteConfig] = None,
        *,
        language_features: Optional[LanguageFeatures] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or AutocompleteConfig()
        self._backend = backend
        self._language_features = language_features
        self._clock = clock

        self._ids = itertools.count()
        # uri -> _DocumentState
        self._documents: Dict[str, _DocumentState] = {}

        self.stats: Counter = Counter()

        logger.info("Initialized AutocompleteService (backend=%s)", backend.name)

    # ------------------------------------------------------------------ document lifecycle

    def close_document(self, uri: str) -> None:
        """Drop the document's cache, cancelling its in-flight requests."""

        state = self._documents.pop(uri, None)
        if state is not None:
            state.cache.clear()

    def dispose(self) -> None:
        for uri in list(self._documents):
            self.close_document(uri)

    def predictions_of(self, uri: str) -> List[Prediction]:
        """Live cached predictions of *uri*, oldest first."""

        state = self._documents.get(uri)
        return state.cache.values() if state is not None else []

    def _state_for(self, uri: str) -> _DocumentState:
        state = self._documents.get(uri)
        if state is None:
            state = _DocumentState(uri, self.config.max_cache_size)
            self._documents[uri] = state
        return state

    # ------------------------------------------------------------------ editor API

    async def provide_inline_completions(
        self,
        document: TextDocument,
        position: Position,
    ) -> List[InlineCompletion]:
        """Return zero or one candidate insertion for the cursor."""

        if not self.config.enabled:
            return []

        try:
            return await self._provide(document, position)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("autocomplete failed for %s", document.uri)
            self.stats["internal_errors"] += 1
            return []

    def free_inline_completions(
        self,
        document: TextDocument,
        position: Position,
        completions: Optional[Iterable[InlineCompletion]] = None,
    ) -> List[int]:
        """Handle shown completions that are no longer displayed.

        A finished prediction counts as accepted when the buffer prefix now
        equals ``prediction.prefix + prediction.insert_text`` ignoring
        whitespace.  Accepted predictions are evicted and the acceptance time
        is recorded, which makes the next request a multi-line continuation.
        If *completions* is given only their predictions are considered.
        Returns the ids of accepted predictions.
        """

        state = self._documents.get(document.uri)
        if state is None:
            return []

        candidate_ids = None
        if completions is not None:
            candidate_ids = {c.prediction_id for c in completions if c.prediction_id is not None}

        info = get_document_prefix_and_suffix_info(document, position)
        typed = remove_all_whitespace(info.prefix)

        accepted: List[int] = []
        for prediction in state.cache.values():
            if candidate_ids is not None and prediction.id not in candidate_ids:
                continue
            if prediction.status is not PredictionStatus.FINISHED:
                continue
            if remove_all_whitespace(prediction.prefix + prediction.insert_text) == typed:
                logger.debug("accepted prediction %d", prediction.id)
                state.last_completion_accept = self._clock()
                state.cache.delete(prediction.id)
                accepted.append(prediction.id)

        self.stats["accepted"] += len(accepted)
        return accepted

    # ------------------------------------------------------------------ internals

    async def _provide(self, document: TextDocument, position: Position) -> List[InlineCompletion]:
        state = self._state_for(document.uri)
        info = get_document_prefix_and_suffix_info(document, position)

        cached = self._find_cached(state, info.prefix)
        if cached is not None:
            prediction, matchup = cached
            return await self._serve_cached(state, prediction, matchup, info, position)

        # Wait for the user to stop typing.
        now = self._clock()
        just_accepted = now - state.last_completion_accept < self.config.accept_window_s

        state.debounce_generation += 1
        generation = state.debounce_generation
        await asyncio.sleep(self.config.debounce_s)
        if state.debounce_generation != generation:
            self.stats["debounced"] += 1
            return []

        self._enforce_pending_limit(state)

        options = get_completion_options(
            info,
            just_accepted,
            max_prefix_lines=self.config.max_prefix_lines,
            max_suffix_lines=self.config.max_suffix_lines,
        )
        if not options.should_generate:
            return []

        model_prefix = options.model_prefix
        if self.config.include_related_context:
            related = await gather_related_context(document, position, self._language_features)
            model_prefix = with_context_header(model_prefix, related)

        prediction = Prediction(
            id=next(self._ids),
            prefix=info.prefix,
            suffix=info.suffix,
            model_prefix=model_prefix,
            model_suffix=options.model_suffix,
            kind=options.prediction_kind,
            created_at=self._clock(),
        )
        request = FIMRequest(
            prefix=model_prefix,
            suffix=options.model_suffix,
            stop_tokens=options.stop_tokens,
        )

        logger.debug("starting autocomplete %d (%s)", prediction.id, prediction.kind.value)
        if VERBOSE:
            logger.debug("  model prefix tail: %r", model_prefix[-80:])
            logger.debug("  model suffix head: %r", options.model_suffix[:80])

        task = asyncio.get_running_loop().create_task(self._run_request(prediction, request))
        # A task cancelled before its first step never runs _run_request.
        task.add_done_callback(
            lambda t: t.cancelled() and prediction.fail(RequestOutcome.CANCELLED, "Aborted autocomplete"))
        prediction.request_task = task
        state.cache.set(prediction.id, prediction)
        self.stats["requests"] += 1

        result = await prediction.wait()
        if not result.ok:
            state.cache.delete(prediction.id)
            return []

        return self._to_inline_completions(NO_NEW_TYPING, prediction, info, position)

    def _find_cached(self, state: _DocumentState, prefix: str) -> Optional[tuple[Prediction, MatchupBounds]]:
        for prediction in state.cache.values():
            matchup = get_autocompletion_matchup(prefix, prediction)
            if matchup is not None:
                return prediction, matchup
        return None

    async def _serve_cached(
        self,
        state: _DocumentState,
        prediction: Prediction,
        matchup: MatchupBounds,
        info: PrefixAndSuffixInfo,
        position: Position,
    ) -> List[InlineCompletion]:
        self.stats["cache_hits"] += 1
        if VERBOSE:
            logger.debug("cache hit: prediction %d (%s)", prediction.id, prediction.status.value)

        if prediction.status is PredictionStatus.FINISHED:
            return self._to_inline_completions(matchup, prediction, info, position)

        if prediction.status is PredictionStatus.PENDING:
            result = await prediction.wait()
            if not result.ok:
                state.cache.delete(prediction.id)
                return []
            # The text arrived after the scan; match against it again.
            matchup = get_autocompletion_matchup(info.prefix, prediction)
            if matchup is None:
                return []
            return self._to_inline_completions(matchup, prediction, info, position)

        # Errored entries are not retried.
        return []

    def _enforce_pending_limit(self, state: _DocumentState) -> None:
        pending = [p for p in state.cache.values() if p.is_pending]
        if len(pending) >= self.config.max_pending_requests:
            oldest = pending[0]
            logger.debug("too many pending requests; cancelling prediction %d", oldest.id)
            state.cache.delete(oldest.id)
            self.stats["evicted_pending"] += 1

    def _to_inline_completions(
        self,
        matchup: MatchupBounds,
        prediction: Prediction,
        info: PrefixAndSuffixInfo,
        position: Position,
    ) -> List[InlineCompletion]:
        return to_inline_completions(
            matchup,
            prediction,
            info,
            position,
            suffix_dedup_lines=self.config.suffix_dedup_lines,
            suffix_dedup_score=self.config.suffix_dedup_score,
        )

    # ------------------------------------------------------------------ request task

    async def _run_request(self, prediction: Prediction, request: FIMRequest) -> None:
        """Drive one model request and resolve *prediction* exactly once."""

        try:
            await asyncio.wait_for(self._collect(prediction, request), timeout=self.config.timeout_s)
        except asyncio.TimeoutError:
            prediction.fail(RequestOutcome.TIMEOUT, "Timeout receiving message to LLM.", self._clock())
        except asyncio.CancelledError:
            prediction.fail(RequestOutcome.CANCELLED, "Aborted autocomplete", self._clock())
            self._log_outcome(prediction)
            raise
        except RequestError as exc:
            prediction.fail(RequestOutcome.ERROR, str(exc), self._clock())
        except Exception as exc:
            logger.warning("backend %s raised %r", self._backend.name, exc)
            prediction.fail(RequestOutcome.ERROR, repr(exc), self._clock())
        else:
            text = process_start_and_end_spaces(prediction.raw_text)
            if prediction.kind is PredictionKind.MULTI_LINE_START_ON_NEXT_LINE:
                text = LF + text
            prediction.finish(text, self._clock())

        self._log_outcome(prediction)

    async def _collect(self, prediction: Prediction, request: FIMRequest) -> None:
        stream = self._backend.stream(request)
        try:
            async for chunk in stream:
                if prediction.append_text(chunk, self.config.max_streamed_newlines):
                    logger.debug("prediction %d hit the newline budget", prediction.id)
                    break
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    def _log_outcome(self, prediction: Prediction) -> None:
        result = prediction.result
        if result is None:
            return
        outcome = result.outcome
        self.stats[outcome.value] += 1
        if outcome is RequestOutcome.SUCCESS:
            logger.debug("prediction %d finished in %.0fms", prediction.id, prediction.latency_ms or 0.0)
        elif outcome is RequestOutcome.CANCELLED:
            logger.debug("prediction %d cancelled", prediction.id)
        else:
            logger.info("prediction %d failed (%s): %s", prediction.id, outcome.value, result.message)
