from __future__ import annotations

import math
import re
import statistics
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Sequence, Tuple

from ..textutils import get_body_text, split_sentences

LONG_SENTENCE_CHARS = 50

CONNECTOR_WORDS: Dict[str, Tuple[str, ...]] = {
    "causal": ("因此", "所以", "由于", "因为", "故", "从而", "以致", "导致", "因而", "于是"),
    "adversative": ("然而", "但是", "不过", "尽管", "虽然", "却", "但", "可是", "反而", "相反"),
    "additive": ("此外", "另外", "同时", "并且", "而且", "以及", "再者", "还", "也", "又"),
    "emphatic": (
        "尤其",
        "特别",
        "值得注意的是",
        "需要指出的是",
        "显然",
        "明显",
        "重要的是",
        "关键是",
    ),
}

ENGLISH_CONNECTOR_WORDS: Dict[str, Tuple[str, ...]] = {
    "causal": ("therefore", "thus", "hence", "consequently", "because", "accordingly"),
    "adversative": ("however", "nevertheless", "although", "whereas", "conversely", "yet"),
    "additive": ("furthermore", "moreover", "additionally", "in addition", "also"),
    "emphatic": ("notably", "in particular", "indeed", "importantly", "clearly"),
}

TEMPLATE_PHRASES: Tuple[str, ...] = (
    "本文首先",
    "本文其次",
    "本文最后",
    "本文提出",
    "综上所述",
    "总而言之",
    "总的来说",
    "众所周知",
    "不言而喻",
    "毋庸置疑",
    "近年来",
    "随着.*?的发展",
    "受到广泛关注",
    "具有重要意义",
    "具有重要的理论和实践价值",
    "研究表明",
    "结果表明",
    "实验表明",
    "进行了.*?研究",
    "开展了.*?工作",
    r"\bin recent years\b",
    r"\bit is well known that\b",
    r"\bin conclusion\b",
    r"\bplays? an important role\b",
)

_TEMPLATE_RES = tuple(re.compile(p, re.IGNORECASE) for p in TEMPLATE_PHRASES)
_ENGLISH_CONNECTOR_RES = {
    category: tuple(
        re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE) for word in words
    )
    for category, words in ENGLISH_CONNECTOR_WORDS.items()
}


@dataclass(slots=True)
class SentenceLengthStats:
    mean: float = 0.0
    p50: float = 0.0
    p90: float = 0.0
    long_rate: float = 0.0


@dataclass(slots=True)
class PunctuationDensity:
    """Occurrences per 1000 characters of body text."""

    comma: float = 0.0
    semicolon: float = 0.0
    parenthesis: float = 0.0


@dataclass(slots=True)
class ConnectorCounts:
    causal: int = 0
    adversative: int = 0
    additive: int = 0
    emphatic: int = 0

    @property
    def total(self) -> int:
        return self.causal + self.adversative + self.additive + self.emphatic

    def proportions(self) -> Dict[str, float]:
        total = self.total or 1
        return {
            "causal": self.causal / total,
            "adversative": self.adversative / total,
            "additive": self.additive / total,
            "emphatic": self.emphatic / total,
        }


@dataclass(slots=True)
class TemplateCounts:
    count: int = 0
    per_thousand_chars: float = 0.0


@dataclass(slots=True)
class DetailedMetrics:
    """Deterministic statistical fingerprint of a text."""

    sentence_length: SentenceLengthStats = field(default_factory=SentenceLengthStats)
    punctuation_density: PunctuationDensity = field(default_factory=PunctuationDensity)
    connector_counts: ConnectorCounts = field(default_factory=ConnectorCounts)
    template_counts: TemplateCounts = field(default_factory=TemplateCounts)
    text_length_chars: int = 0
    sentence_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["connector_counts"]["total"] = self.connector_counts.total
        return data


def round_half_up(value: float, digits: int = 1) -> float:
    """Round like a calculator: halves always go away from zero for positives."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """Percentile with linear interpolation between closest ranks."""
    if not sorted_values:
        return 0.0
    position = (p / 100) * (len(sorted_values) - 1)
    lower = math.floor(position)
    upper = math.ceil(position)
    if lower == upper:
        return float(sorted_values[lower])
    low_value = sorted_values[lower]
    return low_value + (sorted_values[upper] - low_value) * (position - lower)


def _count_connectors(body: str) -> ConnectorCounts:
    counts = ConnectorCounts()
    for category, words in CONNECTOR_WORDS.items():
        found = sum(body.count(word) for word in words)
        found += sum(len(regex.findall(body)) for regex in _ENGLISH_CONNECTOR_RES[category])
        setattr(counts, category, found)
    return counts


def calculate_metrics(text: str) -> DetailedMetrics:
    """Compute sentence, punctuation, connector and template statistics for text."""
    body = get_body_text(text)
    sentences = split_sentences(text)
    text_length = len(body)

    lengths: List[int] = [len(sentence.text) for sentence in sentences]
    ordered = sorted(lengths)
    long_count = sum(1 for length in lengths if length > LONG_SENTENCE_CHARS)
    sentence_length = SentenceLengthStats(
        mean=round_half_up(statistics.mean(lengths)) if lengths else 0.0,
        p50=round_half_up(percentile(ordered, 50)),
        p90=round_half_up(percentile(ordered, 90)),
        long_rate=round_half_up(long_count / len(lengths) * 100) if lengths else 0.0,
    )

    per_thousand = 1000 / text_length if text_length else 0.0
    commas = body.count("，") + body.count(",")
    semicolons = body.count("；") + body.count(";")
    parentheses = sum(body.count(mark) for mark in ("（", "）", "(", ")"))
    punctuation = PunctuationDensity(
        comma=round_half_up(commas * per_thousand),
        semicolon=round_half_up(semicolons * per_thousand),
        parenthesis=round_half_up(parentheses * per_thousand),
    )

    template_count = sum(len(regex.findall(body)) for regex in _TEMPLATE_RES)
    templates = TemplateCounts(
        count=template_count,
        per_thousand_chars=(
            round_half_up(template_count * 1000 / text_length, 2) if text_length else 0.0
        ),
    )

    return DetailedMetrics(
        sentence_length=sentence_length,
        punctuation_density=punctuation,
        connector_counts=_count_connectors(body),
        template_counts=templates,
        text_length_chars=text_length,
        sentence_count=len(sentences),
    )
