"""
Mirror score: how close a text's metrics are to the sample's metrics.

Each component distance is normalised into [0, 1]; the weighted distance is
turned into a 0-100 similarity where 100 means identical fingerprints.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Union

from .metrics import (
    ConnectorCounts,
    DetailedMetrics,
    PunctuationDensity,
    SentenceLengthStats,
    TemplateCounts,
    calculate_metrics,
    round_half_up,
)


@dataclass(frozen=True, slots=True)
class MirrorWeights:
    sentence: float = 0.4
    connectors: float = 0.25
    punctuation: float = 0.15
    templates: float = 0.2

    def __post_init__(self) -> None:
        values = (self.sentence, self.connectors, self.punctuation, self.templates)
        if any(value < 0 for value in values):
            raise ValueError("Mirror score weights must be non-negative.")
        if abs(sum(values) - 1.0) > 1e-6:
            raise ValueError("Mirror score weights must sum to 1.")


@dataclass(slots=True)
class MirrorScore:
    draft_to_sample: float
    standard_to_sample: float
    improvement: float
    weights: MirrorWeights = field(default_factory=MirrorWeights)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


MetricsInput = Union[DetailedMetrics, str]


def normalized_diff(a: float, b: float, max_expected: float) -> float:
    if max_expected == 0:
        return 0.0
    return min(abs(a - b) / max_expected, 1.0)


def sentence_length_distance(
    target: SentenceLengthStats, sample: SentenceLengthStats
) -> float:
    return (
        normalized_diff(target.mean, sample.mean, 50) * 0.4
        + normalized_diff(target.p50, sample.p50, 50) * 0.3
        + normalized_diff(target.p90, sample.p90, 100) * 0.2
        + normalized_diff(target.long_rate, sample.long_rate, 100) * 0.1
    )


def connector_distance(target: ConnectorCounts, sample: ConnectorCounts) -> float:
    target_share = target.proportions()
    sample_share = sample.proportions()
    l1 = sum(abs(target_share[key] - sample_share[key]) for key in target_share)
    # L1 distance between two distributions is at most 2.
    return min(l1 / 2, 1.0)


def punctuation_distance(
    target: PunctuationDensity, sample: PunctuationDensity
) -> float:
    return (
        normalized_diff(target.comma, sample.comma, 30) * 0.5
        + normalized_diff(target.semicolon, sample.semicolon, 10) * 0.25
        + normalized_diff(target.parenthesis, sample.parenthesis, 20) * 0.25
    )


def template_distance(target: TemplateCounts, sample: TemplateCounts) -> float:
    return normalized_diff(target.per_thousand_chars, sample.per_thousand_chars, 5)


def calculate_mirror_score(
    target: DetailedMetrics,
    sample: DetailedMetrics,
    weights: MirrorWeights | None = None,
) -> float:
    """Return the 0-100 similarity of target to sample, rounded to 0.1."""
    weights = weights or MirrorWeights()
    distance = (
        sentence_length_distance(target.sentence_length, sample.sentence_length)
        * weights.sentence
        + connector_distance(target.connector_counts, sample.connector_counts)
        * weights.connectors
        + punctuation_distance(target.punctuation_density, sample.punctuation_density)
        * weights.punctuation
        + template_distance(target.template_counts, sample.template_counts)
        * weights.templates
    )
    return round_half_up((1 - distance) * 100)


def _as_metrics(value: MetricsInput) -> DetailedMetrics:
    if isinstance(value, DetailedMetrics):
        return value
    return calculate_metrics(value)


def generate_mirror_score(
    sample: MetricsInput,
    draft: MetricsInput,
    standard: MetricsInput,
    weights: MirrorWeights | None = None,
) -> MirrorScore:
    """Score draft and rewritten output against the sample and report the gain."""
    weights = weights or MirrorWeights()
    sample_metrics = _as_metrics(sample)
    draft_score = calculate_mirror_score(_as_metrics(draft), sample_metrics, weights)
    standard_score = calculate_mirror_score(
        _as_metrics(standard), sample_metrics, weights
    )
    return MirrorScore(
        draft_to_sample=draft_score,
        standard_to_sample=standard_score,
        improvement=round_half_up(standard_score - draft_score),
        weights=weights,
    )
