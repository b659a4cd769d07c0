from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from functools import partial
from typing import Any, Callable, Dict, List, Sequence

from ..textutils import Sentence, split_sentences
from .metrics import round_half_up

logger = logging.getLogger(__name__)

DEFAULT_MAX_ALERTS = 10

# ASCII lookarounds instead of \b so tokens directly adjacent to CJK text match.
NUMBER_RE = re.compile(
    r"(?<![0-9A-Za-z.])"
    r"\d+(?:\.\d+)?(?:[eE][+-]?\d+)?"
    r"(?:%|‰|[A-Za-zμ°℃]{1,3}(?![A-Za-z]))?"
)

NUMBER_LOSS = "number_loss"
ACRONYM_CHANGE = "acronym_change"


def _acronym_re(min_length: int) -> re.Pattern[str]:
    return re.compile(rf"(?<![A-Za-z0-9])[A-Z]{{{min_length},}}[0-9]*(?![A-Za-z0-9])")


@dataclass(slots=True)
class FidelityAlert:
    type: str
    token: str
    detail: str
    sentence_index: int | None = None


@dataclass(slots=True)
class FidelityGuardrails:
    number_retention_rate: float = 100.0
    acronym_retention_rate: float = 100.0
    alerts: List[FidelityAlert] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _distinct(tokens: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(token.strip() for token in tokens))


def extract_numbers(text: str) -> List[str]:
    """Distinct numeric tokens in order of first appearance."""
    return _distinct(NUMBER_RE.findall(text))


def extract_acronyms(text: str, min_length: int = 2) -> List[str]:
    """Distinct upper-case acronym tokens in order of first appearance."""
    return _distinct(_acronym_re(min_length).findall(text))


def retention_rate(original: Sequence[str], rewritten: Sequence[str]) -> float:
    if not original:
        return 100.0
    kept = set(rewritten)
    retained = sum(1 for item in original if item in kept)
    return round_half_up(retained / len(original) * 100)


def _locate(
    sentences: Sequence[Sentence], token: str, extract: Callable[[str], List[str]]
) -> int | None:
    for sentence in sentences:
        if token in extract(sentence.text):
            return sentence.index
    return None


def calculate_fidelity_guardrails(
    draft: str,
    rewritten: str,
    *,
    max_alerts: int = DEFAULT_MAX_ALERTS,
    min_acronym_length: int = 2,
) -> FidelityGuardrails:
    """Check that numbers and acronyms of the draft survive in the rewritten text."""
    draft_numbers = extract_numbers(draft)
    draft_acronyms = extract_acronyms(draft, min_length=min_acronym_length)
    rewritten_numbers = set(extract_numbers(rewritten))
    rewritten_acronyms = set(extract_acronyms(rewritten, min_length=min_acronym_length))

    acronyms_in = partial(extract_acronyms, min_length=min_acronym_length)
    sentences = split_sentences(draft)
    alerts: List[FidelityAlert] = []
    for kind, label, draft_items, kept, extract in (
        (NUMBER_LOSS, "number", draft_numbers, rewritten_numbers, extract_numbers),
        (ACRONYM_CHANGE, "acronym", draft_acronyms, rewritten_acronyms, acronyms_in),
    ):
        for token in draft_items:
            if token in kept:
                continue
            if len(alerts) >= max_alerts:
                break
            alerts.append(
                FidelityAlert(
                    type=kind,
                    token=token,
                    detail=f"Missing {label}: {token}",
                    sentence_index=_locate(sentences, token, extract),
                )
            )

    guardrails = FidelityGuardrails(
        number_retention_rate=retention_rate(draft_numbers, list(rewritten_numbers)),
        acronym_retention_rate=retention_rate(draft_acronyms, list(rewritten_acronyms)),
        alerts=alerts,
    )
    if alerts:
        logger.info(
            "Fidelity check raised %s alert(s): numbers %.1f%%, acronyms %.1f%%",
            len(alerts),
            guardrails.number_retention_rate,
            guardrails.acronym_retention_rate,
        )
    return guardrails
