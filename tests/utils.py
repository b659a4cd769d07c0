from __future__ import annotations

from typing import Callable, List

from papermirror.models import (
    DocumentContext,
    Replacement,
    RewrittenChunk,
    StyleGuide,
)
from papermirror.rewriting import (
    ChunkRewriteRequest,
    Replacements,
    RewriteOutcome,
    Rewriter,
    SentenceBatchRequest,
    TransportFailure,
)


class FakeClock:
    """Monotonic clock that advances by a scripted duration on every other call."""

    def __init__(self, durations: List[float] | None = None, default: float = 1.0):
        self.now = 0.0
        self._durations = list(durations or [])
        self._default = default
        self._calls = 0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        self._calls += 1
        # Calls come in (start, end) pairs around each request.
        if self._calls % 2 == 0:
            step = self._durations.pop(0) if self._durations else self._default
            self.now += step
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)


class ScriptedRewriter(Rewriter):
    """Rewriter whose sentence replies are produced by a callable and recorded."""

    def __init__(
        self,
        reply: Callable[[SentenceBatchRequest], RewriteOutcome] | None = None,
        *,
        style_guide: StyleGuide | None = None,
        document_context: DocumentContext | None = None,
        chunk_reply: Callable[[ChunkRewriteRequest], RewrittenChunk] | None = None,
    ) -> None:
        self._reply = reply or (lambda request: Replacements([]))
        self._style_guide = style_guide or StyleGuide.default()
        self._document_context = document_context or DocumentContext.empty()
        self._chunk_reply = chunk_reply
        self.requests: List[SentenceBatchRequest] = []
        self.chunk_requests: List[ChunkRewriteRequest] = []

    @property
    def batch_sizes(self) -> List[int]:
        return [len(request.sentences) for request in self.requests]

    def extract_style_guide(self, sample: str) -> StyleGuide:
        return self._style_guide

    def generate_document_context(self, draft: str) -> DocumentContext:
        return self._document_context

    def rewrite_sentences(self, request: SentenceBatchRequest) -> RewriteOutcome:
        self.requests.append(request)
        return self._reply(request)

    def rewrite_chunk(self, request: ChunkRewriteRequest) -> RewrittenChunk:
        self.chunk_requests.append(request)
        if self._chunk_reply is None:
            return RewrittenChunk(request.content, request.content, request.content)
        return self._chunk_reply(request)


def always_fail(request: SentenceBatchRequest) -> RewriteOutcome:
    return TransportFailure(cause=TimeoutError("service timed out"))


def upper_case_all(request: SentenceBatchRequest) -> RewriteOutcome:
    return Replacements(
        [Replacement(s.index, s.text.upper()) for s in request.sentences]
    )
