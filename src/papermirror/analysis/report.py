from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Sequence, Union

from ..config import FidelitySettings
from .citations import CitationSuggestions, generate_citation_suggestions
from .fidelity import FidelityGuardrails, calculate_fidelity_guardrails
from .metrics import DetailedMetrics, calculate_metrics
from .mirror_score import MirrorScore, MirrorWeights, generate_mirror_score

logger = logging.getLogger(__name__)

STATUS_COMPLETE = "complete"
STATUS_PARTIAL = "partial"


class AnalysisMode(str, Enum):
    NONE = "none"
    FIDELITY_ONLY = "fidelity_only"
    FULL = "full"


@dataclass(slots=True)
class StyleComparison:
    sample: DetailedMetrics
    draft: DetailedMetrics
    standard: DetailedMetrics

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sample": self.sample.to_dict(),
            "draft": self.draft.to_dict(),
            "standard": self.standard.to_dict(),
        }


@dataclass(slots=True)
class NoAnalysis:
    def to_dict(self) -> Dict[str, Any]:
        return {"mode": AnalysisMode.NONE.value}


@dataclass(slots=True)
class FidelityOnly:
    fidelity: FidelityGuardrails

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": AnalysisMode.FIDELITY_ONLY.value,
            "fidelity": self.fidelity.to_dict(),
        }


@dataclass(slots=True)
class FullAnalysis:
    fidelity: FidelityGuardrails
    mirror_score: MirrorScore
    style_comparison: StyleComparison
    citations: CitationSuggestions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": AnalysisMode.FULL.value,
            "fidelity": self.fidelity.to_dict(),
            "mirror_score": self.mirror_score.to_dict(),
            "style_comparison": self.style_comparison.to_dict(),
            "citations": self.citations.to_dict(),
        }


Analysis = Union[NoAnalysis, FidelityOnly, FullAnalysis]


@dataclass(slots=True)
class AnalysisReport:
    """Outcome of a workflow run; always present, even when nothing was analysed."""

    status: str
    message: str
    warnings: List[str] = field(default_factory=list)
    analysis: Analysis = field(default_factory=NoAnalysis)

    @property
    def is_complete(self) -> bool:
        return self.status == STATUS_COMPLETE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "message": self.message,
            "warnings": list(self.warnings),
            "analysis": self.analysis.to_dict(),
        }


def run_analysis(
    mode: AnalysisMode | str,
    sample: str,
    draft: str,
    standard: str,
    *,
    fidelity_settings: FidelitySettings | None = None,
    weights: MirrorWeights | None = None,
) -> Analysis:
    """Run the local analysis selected by mode over sample, draft and output."""
    mode = AnalysisMode(mode)
    if mode is AnalysisMode.NONE:
        return NoAnalysis()

    settings = fidelity_settings or FidelitySettings()
    fidelity = calculate_fidelity_guardrails(
        draft,
        standard,
        max_alerts=settings.max_alerts,
        min_acronym_length=settings.min_acronym_length,
    )
    if mode is AnalysisMode.FIDELITY_ONLY:
        return FidelityOnly(fidelity=fidelity)

    comparison = StyleComparison(
        sample=calculate_metrics(sample),
        draft=calculate_metrics(draft),
        standard=calculate_metrics(standard),
    )
    return FullAnalysis(
        fidelity=fidelity,
        mirror_score=generate_mirror_score(
            comparison.sample, comparison.draft, comparison.standard, weights
        ),
        style_comparison=comparison,
        citations=generate_citation_suggestions(draft),
    )


def build_analysis_report(
    mode: AnalysisMode | str,
    sample: str,
    draft: str,
    standard: str,
    *,
    failed_chunks: int = 0,
    failed_sentences: int = 0,
    warnings: Sequence[str] = (),
    fidelity_settings: FidelitySettings | None = None,
) -> AnalysisReport:
    """Summarise the run status and attach the analysis for the requested mode."""
    warnings = list(warnings)
    partial = failed_chunks > 0 or failed_sentences > 0 or bool(warnings)
    message = (
        f"Processing completed. Failed chunks: {failed_chunks}, "
        f"Failed sentences: {failed_sentences}"
    )
    if warnings:
        message = f"{message}. " + " ".join(warnings)
    analysis = run_analysis(
        mode, sample, draft, standard, fidelity_settings=fidelity_settings
    )
    status = STATUS_PARTIAL if partial else STATUS_COMPLETE
    logger.info("Workflow finished with status %s: %s", status, message)
    return AnalysisReport(
        status=status,
        message=message,
        warnings=warnings,
        analysis=analysis,
    )
