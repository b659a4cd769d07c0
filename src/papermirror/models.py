from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any, Callable, List, Union

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from .analysis.report import AnalysisReport


@dataclass(slots=True)
class SentenceToken:
    """An indexed, independently rewritable unit of text."""

    index: int
    text: str


@dataclass(slots=True)
class SeparatorToken:
    """Literal whitespace between sentences or paragraphs; never rewritten."""

    text: str


Token = Union[SentenceToken, SeparatorToken]


@dataclass(slots=True)
class Replacement:
    """Replace the sentence token at ``index`` with ``text``."""

    index: int
    text: str


@dataclass(slots=True)
class Chunk:
    """A coarse document section processed as one unit of the workflow."""

    title: str
    raw_title: str
    content: str


@dataclass(frozen=True, slots=True)
class StyleGuide:
    """Style fingerprint extracted from the sample document."""

    average_sentence_length: float
    lexical_complexity: float
    passive_voice_percentage: float
    common_transitions: tuple[str, ...] = ()
    tone: str = ""
    structure: str = ""

    @classmethod
    def default(cls) -> "StyleGuide":
        """Conservative guide used when extraction fails and fallback is enabled."""
        return cls(
            average_sentence_length=25.0,
            lexical_complexity=0.6,
            passive_voice_percentage=20.0,
            common_transitions=(),
            tone="Formal and objective",
            structure="Keep the original structure of the draft.",
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["common_transitions"] = list(self.common_transitions)
        return data


@dataclass(frozen=True, slots=True)
class SectionSummary:
    section_title: str
    summary: str


@dataclass(frozen=True, slots=True)
class DocumentContext:
    """Global summary of the draft used to keep rewrites coherent."""

    document_summary: str
    section_summaries: tuple[SectionSummary, ...] = ()

    @classmethod
    def empty(cls) -> "DocumentContext":
        return cls(document_summary="", section_summaries=())

    def summary_for(self, section_title: str | None) -> str | None:
        """Return the summary whose title contains ``section_title`` (case-insensitive)."""
        if not section_title:
            return None
        needle = section_title.lower()
        for section in self.section_summaries:
            if needle in section.section_title.lower():
                return section.summary
        return None


@dataclass(slots=True)
class RewrittenChunk:
    """Three intensity variants returned for a chunk in full-text mode."""

    conservative: str
    standard: str
    enhanced: str


@dataclass(slots=True)
class MigrationResult:
    """Final (or partial, when streamed) output of a workflow run."""

    conservative: str | None = None
    standard: str | None = None
    enhanced: str | None = None
    analysis_report: "AnalysisReport | None" = None


@dataclass(slots=True)
class ProgressUpdate:
    """Progress notification emitted at chunk and batch granularity."""

    stage: str
    current: int | None = None
    total: int | None = None
    payload: MigrationResult | None = None


ProgressCallback = Callable[[ProgressUpdate], None]


@dataclass(slots=True)
class ChunkOutcome:
    """Result of rewriting one chunk in sentence-edit mode."""

    content: str
    replacements: List[Replacement] = field(default_factory=list)
    failed_indices: List[int] = field(default_factory=list)
