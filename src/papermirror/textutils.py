from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List

# A sentence ends after East-Asian 。？！ (optionally followed by a closing quote
# or bracket), or after ASCII .?! when whitespace follows.
SENTENCE_SPLIT_RE = re.compile(
    r"(?<=[。？！])(?![”’」』）)])"
    r"|(?<=[。？！][”’」』）)])"
    r"|(?<=[.?!])(?=\s)"
    r"|(?<=[.?!][\"')])(?=\s)"
)
PARAGRAPH_BREAK_RE = re.compile(r"\s*\n\s*\n\s*")
HEADING_RE = re.compile(r"^#+\s")
MIN_SENTENCE_CHARS = 2


@dataclass(slots=True)
class Sentence:
    text: str
    index: int


def normalize_text(text: str) -> str:
    """Unify line breaks, cap blank lines at one, collapse spaces and trim."""
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    normalized = re.sub(r"\n{3,}", "\n\n", normalized)
    normalized = re.sub(r"[ \t]+", " ", normalized)
    return normalized.strip()


def is_markdown_heading(line: str) -> bool:
    return bool(HEADING_RE.match(line.strip()))


def split_paragraphs(text: str) -> List[str]:
    """Split normalized text on blank lines, dropping empty paragraphs."""
    return [part.strip() for part in PARAGRAPH_BREAK_RE.split(text) if part.strip()]


def split_sentences(text: str) -> List[Sentence]:
    """
    Split text into sentences for statistics and fidelity localisation.

    Paragraph breaks always end a sentence, heading lines are skipped and
    fragments shorter than two characters are dropped.
    """
    sentences: List[Sentence] = []
    for paragraph in split_paragraphs(normalize_text(text)):
        body = "\n".join(
            line for line in paragraph.split("\n") if not is_markdown_heading(line)
        )
        for part in SENTENCE_SPLIT_RE.split(body):
            trimmed = part.strip()
            if len(trimmed) < MIN_SENTENCE_CHARS:
                continue
            sentences.append(Sentence(text=trimmed, index=len(sentences)))
    return sentences


def get_body_text(text: str) -> str:
    """Return normalized text without Markdown heading lines."""
    lines = normalize_text(text).split("\n")
    return "\n".join(line for line in lines if not is_markdown_heading(line)).strip()
