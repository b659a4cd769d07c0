"""
Sentence-level tokenization of a document.

A document becomes an ordered list of sentence tokens (rewritable, indexed)
and separator tokens (literal whitespace, immutable). Concatenating the
tokens reproduces ``normalize_text(text)`` exactly; oversized sentences are
split at substring boundaries so no character is lost.
"""

from __future__ import annotations

import re
from typing import List, Sequence

from .config import TokenizerSettings
from .models import SentenceToken, SeparatorToken, Token
from .textutils import (
    PARAGRAPH_BREAK_RE,
    SENTENCE_SPLIT_RE,
    is_markdown_heading,
    normalize_text,
)

CLAUSE_SPLIT_RE = re.compile(r"(?<=[，；,;])")
# Preferred force-split boundaries, most preferred first.
BREAK_CHARS = ("，", "、", "；", " ", ",", ";")

_PARAGRAPH_SPLIT_RE = re.compile(f"({PARAGRAPH_BREAK_RE.pattern})")


def force_split(text: str, max_size: int, lookback: int = 50) -> List[str]:
    """
    Cut ``text`` into pieces of at most ``max_size`` characters.

    Each cut lands just after the most preferred break character found in the
    last ``lookback`` characters of the window; without one the window is cut
    hard. The pieces concatenate back to ``text``.
    """
    if len(text) <= max_size:
        return [text]

    pieces: List[str] = []
    start = 0
    while start < len(text):
        end = min(start + max_size, len(text))
        if end < len(text):
            search_start = max(start, end - lookback)
            segment = text[search_start:end]
            for char in BREAK_CHARS:
                idx = segment.rfind(char)
                if idx != -1:
                    break_index = search_start + idx + 1
                    if break_index > start:
                        end = break_index
                    break
        pieces.append(text[start:end])
        start = end
    return pieces


def split_long_sentence(text: str, settings: TokenizerSettings) -> List[str]:
    """Split a sentence over ``max_sentence_chars`` on clauses, then by force."""
    if len(text) <= settings.max_sentence_chars:
        return [text]

    pieces: List[str] = []
    for clause in CLAUSE_SPLIT_RE.split(text):
        if not clause:
            continue
        if len(clause) > settings.force_split_chunk_size:
            pieces.extend(
                force_split(
                    clause,
                    settings.force_split_chunk_size,
                    settings.force_split_lookback,
                )
            )
        else:
            pieces.append(clause)
    return pieces


class _TokenStream:
    """Accumulates tokens, assigning indices and merging adjacent separators."""

    def __init__(self) -> None:
        self.tokens: List[Token] = []
        self._next_index = 0

    def separator(self, text: str) -> None:
        if not text:
            return
        if self.tokens and isinstance(self.tokens[-1], SeparatorToken):
            self.tokens[-1] = SeparatorToken(self.tokens[-1].text + text)
        else:
            self.tokens.append(SeparatorToken(text))

    def sentence(self, text: str) -> None:
        core = text.strip()
        if not core:
            self.separator(text)
            return
        start = text.index(core)
        self.separator(text[:start])
        self.tokens.append(SentenceToken(index=self._next_index, text=core))
        self._next_index += 1
        self.separator(text[start + len(core) :])


def _merge_fragments(parts: Sequence[str], min_chars: int) -> List[str]:
    """Glue fragments shorter than ``min_chars`` onto a neighbouring part."""
    merged: List[str] = []
    carry = ""
    for part in parts:
        if not part:
            continue
        if len(part.strip()) < min_chars:
            if merged:
                merged[-1] += part
            else:
                carry += part
            continue
        merged.append(carry + part)
        carry = ""
    if carry:
        if merged:
            merged[-1] += carry
        else:
            merged.append(carry)
    return merged


def _split_paragraph(
    stream: _TokenStream, paragraph: str, settings: TokenizerSettings
) -> None:
    if not paragraph:
        return
    sentences = _merge_fragments(
        SENTENCE_SPLIT_RE.split(paragraph), settings.min_sentence_chars
    )
    for sentence in sentences:
        for segment in split_long_sentence(sentence, settings):
            stream.sentence(segment)


def tokenize_document(
    text: str, settings: TokenizerSettings | None = None
) -> List[Token]:
    """
    Tokenize a document into sentence and separator tokens.

    - Paragraphs are separated by blank lines; the break is kept as a separator.
    - A Markdown heading line becomes a single, unsplit sentence token; body
      text on the lines below it in the same paragraph is split as usual.
    - Other paragraphs are split on sentence-final punctuation; sentences over
      ``max_sentence_chars`` are split again on clause punctuation and then
      force-split to ``force_split_chunk_size``.
    - Sentence indices run across the whole call starting at 0.
    """
    settings = settings or TokenizerSettings()
    normalized = normalize_text(text)
    if not normalized:
        return []

    stream = _TokenStream()
    for position, part in enumerate(_PARAGRAPH_SPLIT_RE.split(normalized)):
        if position % 2 == 1:
            stream.separator(part)
            continue
        if not part:
            continue
        if is_markdown_heading(part):
            heading, newline, part = part.partition("\n")
            stream.sentence(heading)
            stream.separator(newline)
        _split_paragraph(stream, part, settings)
    return stream.tokens


def get_sentence_tokens(tokens: Sequence[Token]) -> List[SentenceToken]:
    """Extract only the sentence tokens from a token sequence."""
    return [token for token in tokens if isinstance(token, SentenceToken)]


def create_batches(
    sentences: Sequence[SentenceToken], batch_size: int
) -> List[List[SentenceToken]]:
    """Group sentence tokens into fixed-size batches."""
    size = max(1, batch_size)
    return [list(sentences[i : i + size]) for i in range(0, len(sentences), size)]
