from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import AbstractSet, Dict, Iterable, List, Sequence

from .models import Replacement, SeparatorToken, Token

logger = logging.getLogger(__name__)

PARAGRAPH_SEPARATOR = "\n\n"


@dataclass(slots=True)
class ValidationResult:
    valid: List[Replacement] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def validate_replacements(
    replacements: Iterable[Replacement], valid_indices: AbstractSet[int]
) -> ValidationResult:
    """
    Drop replacements that would corrupt the token stream.

    A replacement is rejected when its index was not sent in the batch, when
    its index was already accepted, or when its text contains a paragraph
    separator.
    """
    result = ValidationResult()
    accepted: set[int] = set()
    for replacement in replacements:
        if replacement.index not in valid_indices:
            result.errors.append(f"Invalid replacement index: {replacement.index}")
            continue
        if replacement.index in accepted:
            result.errors.append(f"Duplicate replacement index: {replacement.index}")
            continue
        if PARAGRAPH_SEPARATOR in replacement.text:
            result.errors.append(
                f"Replacement at index {replacement.index} contains paragraph separator"
            )
            continue
        accepted.add(replacement.index)
        result.valid.append(replacement)
    for error in result.errors:
        logger.warning("Rejected replacement: %s", error)
    return result


def rebuild_text(tokens: Sequence[Token], replacements: Iterable[Replacement]) -> str:
    """Rebuild text from tokens, substituting replaced sentence text."""
    lookup: Dict[int, str] = {r.index: r.text for r in replacements}
    parts: List[str] = []
    for token in tokens:
        if isinstance(token, SeparatorToken):
            parts.append(token.text)
        else:
            parts.append(lookup.get(token.index, token.text))
    return "".join(parts)
