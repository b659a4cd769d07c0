from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Mapping, Union

from .errors import ServiceResponseError, ServiceTransportError
from .llm.openai_client import OpenAIRewriteClient, RequestMetadata
from .llm.payloads import parse_json_object
from .models import (
    DocumentContext,
    Replacement,
    RewrittenChunk,
    SectionSummary,
    SentenceToken,
    StyleGuide,
)
from .prompts import (
    CHUNK_REWRITE_SYSTEM_PROMPT,
    DOCUMENT_CONTEXT_SYSTEM_PROMPT,
    SENTENCE_EDITS_SYSTEM_PROMPT,
    STYLE_GUIDE_SYSTEM_PROMPT,
    build_chunk_rewrite_prompt,
    build_document_context_prompt,
    build_sentence_edits_prompt,
    build_style_guide_prompt,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SentenceBatchRequest:
    """A batch of sentence tokens submitted to the rewriting service."""

    sentences: List[SentenceToken]
    style_guide: StyleGuide
    global_context: str = ""
    context_before: str = ""
    context_after: str = ""
    chunk_index: int = 0
    batch_number: int = 0


@dataclass(slots=True)
class ChunkRewriteRequest:
    """A whole chunk submitted for full-text rewriting."""

    content: str
    style_guide: StyleGuide
    document_context: DocumentContext = field(default_factory=DocumentContext.empty)
    section_title: str | None = None
    context_before: str = ""
    context_after: str = ""
    chunk_index: int = 0


@dataclass(slots=True)
class Replacements:
    """The service answered with a well-formed list of replacements."""

    replacements: List[Replacement]


@dataclass(slots=True)
class ParseFailure:
    """The service answered, but the reply was not the expected JSON shape."""

    raw_text: str
    reason: str


@dataclass(slots=True)
class TransportFailure:
    """The service could not be reached, timed out or raised."""

    cause: BaseException


RewriteOutcome = Union[Replacements, ParseFailure, TransportFailure]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _pick(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in payload:
            return payload[key]
    return None


def parse_replacements(payload: Mapping[str, Any]) -> List[Replacement]:
    """Convert ``{"replacements": [{"index", "text"}]}`` into Replacement objects."""
    items = payload.get("replacements")
    if not isinstance(items, list):
        raise ServiceResponseError("Reply is missing a 'replacements' list.")
    replacements: List[Replacement] = []
    for item in items:
        if not isinstance(item, Mapping):
            raise ServiceResponseError("Replacement entries must be objects.")
        index = item.get("index")
        text = item.get("text")
        if isinstance(index, str) and index.strip().isdigit():
            index = int(index.strip())
        if not isinstance(index, int) or isinstance(index, bool):
            raise ServiceResponseError(f"Replacement index is not an integer: {index!r}")
        if not isinstance(text, str):
            raise ServiceResponseError(f"Replacement text for {index} is not a string.")
        replacements.append(Replacement(index=index, text=text))
    return replacements


def parse_style_guide(payload: Mapping[str, Any]) -> StyleGuide:
    """Validate and convert a style-extraction reply."""
    numbers = {}
    for name, keys in (
        ("average_sentence_length", ("averageSentenceLength", "average_sentence_length")),
        ("lexical_complexity", ("lexicalComplexity", "lexical_complexity")),
        ("passive_voice_percentage", ("passiveVoicePercentage", "passive_voice_percentage")),
    ):
        value = _pick(payload, *keys)
        if not _is_number(value):
            raise ServiceResponseError(f"Style guide field '{keys[0]}' must be a number.")
        numbers[name] = float(value)
    transitions = _pick(payload, "commonTransitions", "common_transitions") or []
    if not isinstance(transitions, list) or not all(
        isinstance(item, str) for item in transitions
    ):
        raise ServiceResponseError("Style guide 'commonTransitions' must be a string list.")
    tone = payload.get("tone", "")
    structure = payload.get("structure", "")
    if not isinstance(tone, str) or not isinstance(structure, str):
        raise ServiceResponseError("Style guide 'tone' and 'structure' must be strings.")
    return StyleGuide(
        common_transitions=tuple(transitions), tone=tone, structure=structure, **numbers
    )


def parse_document_context(payload: Mapping[str, Any]) -> DocumentContext:
    """Validate and convert a document-context reply."""
    summary = _pick(payload, "documentSummary", "document_summary")
    if not isinstance(summary, str):
        raise ServiceResponseError("Document context is missing 'documentSummary'.")
    raw_sections = _pick(payload, "sectionSummaries", "section_summaries") or []
    if not isinstance(raw_sections, list):
        raise ServiceResponseError("'sectionSummaries' must be a list.")
    sections: List[SectionSummary] = []
    for item in raw_sections:
        if not isinstance(item, Mapping):
            raise ServiceResponseError("Section summaries must be objects.")
        title = _pick(item, "sectionTitle", "section_title") or ""
        text = item.get("summary") or ""
        if not isinstance(title, str) or not isinstance(text, str):
            raise ServiceResponseError("Section summary fields must be strings.")
        sections.append(SectionSummary(section_title=title, summary=text))
    return DocumentContext(document_summary=summary, section_summaries=tuple(sections))


def parse_rewritten_chunk(payload: Mapping[str, Any]) -> RewrittenChunk:
    """Validate and convert a full-text rewrite reply."""
    variants = {}
    for key in ("conservative", "standard", "enhanced"):
        value = payload.get(key)
        if not isinstance(value, str):
            raise ServiceResponseError(f"Chunk rewrite is missing the '{key}' variant.")
        variants[key] = value
    return RewrittenChunk(**variants)


class Rewriter(ABC):
    """Abstract interface to the style-extraction, context and rewriting services."""

    @abstractmethod
    def extract_style_guide(self, sample: str) -> StyleGuide:
        """Return the style fingerprint of the sample document."""
        raise NotImplementedError

    @abstractmethod
    def generate_document_context(self, draft: str) -> DocumentContext:
        """Return a global summary of the draft."""
        raise NotImplementedError

    @abstractmethod
    def rewrite_sentences(self, request: SentenceBatchRequest) -> RewriteOutcome:
        """Return replacements for a batch of sentences as a tagged outcome."""
        raise NotImplementedError

    @abstractmethod
    def rewrite_chunk(self, request: ChunkRewriteRequest) -> RewrittenChunk:
        """Return three rewritten variants of a chunk."""
        raise NotImplementedError


class NoOpRewriter(Rewriter):
    """Leaves every sentence unchanged; useful for dry runs and analysis."""

    def extract_style_guide(self, sample: str) -> StyleGuide:
        return StyleGuide.default()

    def generate_document_context(self, draft: str) -> DocumentContext:
        return DocumentContext.empty()

    def rewrite_sentences(self, request: SentenceBatchRequest) -> RewriteOutcome:
        return Replacements(replacements=[])

    def rewrite_chunk(self, request: ChunkRewriteRequest) -> RewrittenChunk:
        return RewrittenChunk(request.content, request.content, request.content)


class CallableRewriter(NoOpRewriter):
    """Adapt an arbitrary callable into the sentence-rewriting interface."""

    def __init__(
        self,
        func: Callable[[SentenceBatchRequest], Union[RewriteOutcome, Iterable[Replacement]]],
    ) -> None:
        self._func = func

    def rewrite_sentences(self, request: SentenceBatchRequest) -> RewriteOutcome:
        result = self._func(request)
        if isinstance(result, (Replacements, ParseFailure, TransportFailure)):
            return result
        return Replacements(replacements=list(result))


class OpenAIRewriter(Rewriter):
    """Rewriter implementation backed by the OpenAI Responses API."""

    def __init__(self, client: OpenAIRewriteClient) -> None:
        self._client = client

    def extract_style_guide(self, sample: str) -> StyleGuide:
        logger.info("Extracting style guide from sample (%s chars)", len(sample))
        raw = self._client.generate(
            system_prompt=STYLE_GUIDE_SYSTEM_PROMPT,
            user_prompt=build_style_guide_prompt(sample),
            metadata=RequestMetadata(task="style_guide", char_count=len(sample)),
        )
        return parse_style_guide(parse_json_object(raw))

    def generate_document_context(self, draft: str) -> DocumentContext:
        logger.info("Generating document context (%s chars)", len(draft))
        raw = self._client.generate(
            system_prompt=DOCUMENT_CONTEXT_SYSTEM_PROMPT,
            user_prompt=build_document_context_prompt(draft),
            metadata=RequestMetadata(task="document_context", char_count=len(draft)),
        )
        return parse_document_context(parse_json_object(raw))

    def rewrite_sentences(self, request: SentenceBatchRequest) -> RewriteOutcome:
        user_prompt = build_sentence_edits_prompt(
            request.sentences,
            request.style_guide,
            request.global_context,
            request.context_before,
            request.context_after,
        )
        metadata = RequestMetadata(
            task="sentence_edits",
            chunk_index=request.chunk_index,
            batch_number=request.batch_number,
            sentence_count=len(request.sentences),
            char_count=sum(len(s.text) for s in request.sentences),
        )
        try:
            raw = self._client.generate(
                system_prompt=SENTENCE_EDITS_SYSTEM_PROMPT,
                user_prompt=user_prompt,
                metadata=metadata,
            )
        except ServiceTransportError as exc:
            return TransportFailure(cause=exc)
        try:
            return Replacements(replacements=parse_replacements(parse_json_object(raw)))
        except ServiceResponseError as exc:
            return ParseFailure(raw_text=raw, reason=str(exc))

    def rewrite_chunk(self, request: ChunkRewriteRequest) -> RewrittenChunk:
        raw = self._client.generate(
            system_prompt=CHUNK_REWRITE_SYSTEM_PROMPT,
            user_prompt=build_chunk_rewrite_prompt(
                request.content,
                request.style_guide,
                request.document_context,
                request.section_title,
                request.context_before,
                request.context_after,
            ),
            metadata=RequestMetadata(
                task="chunk_rewrite",
                chunk_index=request.chunk_index,
                char_count=len(request.content),
            ),
        )
        return parse_rewritten_chunk(parse_json_object(raw))
