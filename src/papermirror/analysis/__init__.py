from __future__ import annotations

from .citations import (
    CitationSuggestion,
    CitationSuggestions,
    generate_citation_suggestions,
)
from .fidelity import (
    FidelityAlert,
    FidelityGuardrails,
    calculate_fidelity_guardrails,
    extract_acronyms,
    extract_numbers,
)
from .metrics import DetailedMetrics, calculate_metrics
from .mirror_score import (
    MirrorScore,
    MirrorWeights,
    calculate_mirror_score,
    generate_mirror_score,
)
from .report import (
    AnalysisMode,
    AnalysisReport,
    FidelityOnly,
    FullAnalysis,
    NoAnalysis,
    StyleComparison,
    build_analysis_report,
    run_analysis,
)

__all__ = [
    "AnalysisMode",
    "AnalysisReport",
    "CitationSuggestion",
    "CitationSuggestions",
    "DetailedMetrics",
    "FidelityAlert",
    "FidelityGuardrails",
    "FidelityOnly",
    "FullAnalysis",
    "MirrorScore",
    "MirrorWeights",
    "NoAnalysis",
    "StyleComparison",
    "build_analysis_report",
    "calculate_fidelity_guardrails",
    "calculate_metrics",
    "calculate_mirror_score",
    "extract_acronyms",
    "extract_numbers",
    "generate_citation_suggestions",
    "generate_mirror_score",
    "run_analysis",
]
