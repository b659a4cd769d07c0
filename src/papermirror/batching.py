"""
Adaptive batch scheduling of sentence rewrites for one chunk.

Sentence tokens are submitted in ascending index order, in batches whose size
follows a degradation chain: slow calls step down the chain, runs of fast
calls step back up. A failing request is retried with only its first half,
the remainder is deferred to one-sentence-at-a-time processing, and a
sentence that still fails keeps its original text.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Sequence, Tuple

from .config import BatchingSettings
from .models import (
    ProgressCallback,
    ProgressUpdate,
    Replacement,
    SentenceToken,
    StyleGuide,
)
from .reconstruction import validate_replacements
from .rewriting import (
    ParseFailure,
    Replacements,
    RewriteOutcome,
    Rewriter,
    SentenceBatchRequest,
    TransportFailure,
)

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    FRESH = "fresh"
    RETRYING = "retrying"
    SINGLE_SENTENCE = "single_sentence"
    DONE = "done"


@dataclass(frozen=True, slots=True)
class BatchAttempt:
    """What to submit next for one batch, plus the sentences still queued."""

    phase: Phase
    pending: Tuple[SentenceToken, ...]
    deferred: Tuple[SentenceToken, ...] = ()
    retries: int = 0


@dataclass(frozen=True, slots=True)
class Transition:
    attempt: BatchAttempt
    failed: Tuple[int, ...] = ()


def start_attempt(batch: Sequence[SentenceToken]) -> BatchAttempt:
    if not batch:
        return BatchAttempt(Phase.DONE, ())
    return BatchAttempt(Phase.FRESH, tuple(batch))


def _next_single(queue: Tuple[SentenceToken, ...]) -> BatchAttempt:
    if not queue:
        return BatchAttempt(Phase.DONE, ())
    return BatchAttempt(Phase.SINGLE_SENTENCE, queue[:1], queue[1:])


def advance_attempt(
    attempt: BatchAttempt, succeeded: bool, max_retries: int
) -> Transition:
    """
    Pure transition function of the retry state machine.

    Every transition either consumes a queued sentence, halves the pending
    request, or spends one retry, so the machine always reaches DONE.
    """
    if attempt.phase is Phase.DONE:
        raise ValueError("Cannot advance a finished batch attempt.")
    if succeeded:
        return Transition(_next_single(attempt.deferred))

    pending = attempt.pending
    if attempt.phase is not Phase.SINGLE_SENTENCE and len(pending) > 1:
        if attempt.retries < max_retries:
            half = max(1, len(pending) // 2)
            return Transition(
                BatchAttempt(
                    Phase.RETRYING,
                    pending[:half],
                    pending[half:] + attempt.deferred,
                    attempt.retries + 1,
                )
            )
        return Transition(_next_single(pending + attempt.deferred))

    return Transition(_next_single(attempt.deferred), failed=(pending[0].index,))


def degrade_batch_size(size: int, chain: Sequence[int]) -> int:
    """Return the next smaller size on the degradation chain."""
    if size in chain:
        position = list(chain).index(size)
        return chain[min(position + 1, len(chain) - 1)]
    for candidate in chain:
        if candidate < size:
            return candidate
    return chain[-1]


def upgrade_batch_size(size: int, chain: Sequence[int], max_size: int) -> int:
    """Return the next larger size on the degradation chain, capped at max_size."""
    larger = [candidate for candidate in chain if candidate > size]
    if not larger:
        return size
    return min(min(larger), max_size)


def adjust_batch_size(
    size: int,
    consecutive_fast_calls: int,
    duration: float,
    settings: BatchingSettings,
) -> Tuple[int, int]:
    """Return the new (batch size, consecutive fast calls) after a successful call."""
    if duration > settings.slow_call_seconds:
        return degrade_batch_size(size, settings.degradation_chain), 0
    if duration < settings.fast_call_seconds:
        consecutive_fast_calls += 1
        if consecutive_fast_calls >= settings.fast_calls_to_upgrade:
            upgraded = upgrade_batch_size(
                size, settings.degradation_chain, settings.max_batch_size
            )
            return upgraded, 0
        return size, consecutive_fast_calls
    return size, 0


@dataclass(slots=True)
class BatchProcessingState:
    """Mutable state threaded through the scheduler for a single chunk."""

    current_batch_size: int
    consecutive_fast_calls: int = 0
    replacements: List[Replacement] = field(default_factory=list)
    failed_indices: List[int] = field(default_factory=list)
    batches_submitted: int = 0
    requests_made: int = 0


class BatchScheduler:
    """Drives the adaptive batch loop for the sentence tokens of one chunk."""

    def __init__(
        self,
        rewriter: Rewriter,
        settings: BatchingSettings | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._rewriter = rewriter
        self._settings = settings or BatchingSettings()
        self._clock = clock
        self._sleep = sleep
        self._on_progress = on_progress

    @property
    def settings(self) -> BatchingSettings:
        return self._settings

    def run(
        self,
        sentences: Sequence[SentenceToken],
        style_guide: StyleGuide,
        *,
        global_context: str = "",
        context_before: str = "",
        context_after: str = "",
        chunk_index: int = 0,
        total_chunks: int = 1,
    ) -> BatchProcessingState:
        """Submit every sentence once and return the accumulated state."""
        settings = self._settings
        state = BatchProcessingState(
            current_batch_size=min(settings.initial_batch_size, settings.max_batch_size)
        )
        total = len(sentences)
        position = 0
        while position < total:
            batch = list(sentences[position : position + state.current_batch_size])
            state.batches_submitted += 1
            self._process_batch(
                batch,
                state,
                SentenceBatchRequest(
                    sentences=batch,
                    style_guide=style_guide,
                    global_context=global_context,
                    context_before=context_before,
                    context_after=context_after,
                    chunk_index=chunk_index,
                    batch_number=state.batches_submitted,
                ),
            )
            position += len(batch)
            self._report(position, total, chunk_index, total_chunks)
            if position < total and settings.inter_batch_delay > 0:
                self._sleep(settings.inter_batch_delay)

        logger.info(
            "Chunk %s complete: %s replacements, %s failures, %s requests",
            chunk_index + 1,
            len(state.replacements),
            len(state.failed_indices),
            state.requests_made,
        )
        return state

    def _process_batch(
        self,
        batch: List[SentenceToken],
        state: BatchProcessingState,
        template: SentenceBatchRequest,
    ) -> None:
        attempt = start_attempt(batch)
        while attempt.phase is not Phase.DONE:
            request = SentenceBatchRequest(
                sentences=list(attempt.pending),
                style_guide=template.style_guide,
                global_context=template.global_context,
                context_before=template.context_before,
                context_after=template.context_after,
                chunk_index=template.chunk_index,
                batch_number=template.batch_number,
            )
            logger.info(
                "[Batch] Chunk %s, batch %s (%s): %s sentences, %s chars",
                template.chunk_index + 1,
                template.batch_number,
                attempt.phase.value,
                len(request.sentences),
                sum(len(s.text) for s in request.sentences),
            )
            started = self._clock()
            outcome = self._submit(request)
            duration = self._clock() - started
            state.requests_made += 1

            succeeded = isinstance(outcome, Replacements)
            if isinstance(outcome, Replacements):
                sent = {sentence.index for sentence in request.sentences}
                result = validate_replacements(outcome.replacements, sent)
                state.replacements.extend(result.valid)
                logger.info(
                    "[Batch] Chunk %s, batch %s: completed in %.2fs, %s replacements",
                    template.chunk_index + 1,
                    template.batch_number,
                    duration,
                    len(result.valid),
                )
                if attempt.phase is not Phase.SINGLE_SENTENCE:
                    self._adapt(state, duration)
            else:
                logger.warning(
                    "[Batch] Chunk %s, batch %s: FAILED (%s) after %.2fs",
                    template.chunk_index + 1,
                    template.batch_number,
                    _describe_failure(outcome),
                    duration,
                )

            transition = advance_attempt(
                attempt, succeeded, self._settings.max_retries_per_batch
            )
            for index in transition.failed:
                logger.warning(
                    "[Batch] Sentence %s failed, preserving original text", index
                )
            state.failed_indices.extend(transition.failed)
            if transition.attempt.phase is Phase.RETRYING:
                logger.info(
                    "[Batch] Retry %s/%s: reducing batch to first %s sentences",
                    transition.attempt.retries,
                    self._settings.max_retries_per_batch,
                    len(transition.attempt.pending),
                )
            attempt = transition.attempt

    def _submit(self, request: SentenceBatchRequest) -> RewriteOutcome:
        try:
            return self._rewriter.rewrite_sentences(request)
        except Exception as exc:
            return TransportFailure(cause=exc)

    def _adapt(self, state: BatchProcessingState, duration: float) -> None:
        new_size, fast_calls = adjust_batch_size(
            state.current_batch_size,
            state.consecutive_fast_calls,
            duration,
            self._settings,
        )
        if new_size != state.current_batch_size:
            logger.info(
                "[Batch] Call took %.2fs, batch size %s -> %s",
                duration,
                state.current_batch_size,
                new_size,
            )
        state.current_batch_size = new_size
        state.consecutive_fast_calls = fast_calls

    def _report(
        self, processed: int, total: int, chunk_index: int, total_chunks: int
    ) -> None:
        if self._on_progress is None:
            return
        percent = round(processed / total * 100) if total else 100
        self._on_progress(
            ProgressUpdate(
                stage=f"Rewriting chunk {chunk_index + 1}/{total_chunks} ({percent}%)",
                current=chunk_index + 1,
                total=total_chunks,
            )
        )


def _describe_failure(outcome: RewriteOutcome) -> str:
    if isinstance(outcome, ParseFailure):
        return f"parse: {outcome.reason}"
    if isinstance(outcome, TransportFailure):
        return f"transport: {type(outcome.cause).__name__}: {outcome.cause}"
    return "unknown"
