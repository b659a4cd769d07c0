from __future__ import annotations

import logging
import re
from typing import List, Sequence, Tuple

from .config import ChunkingSettings
from .models import Chunk
from .textutils import normalize_text, split_paragraphs

logger = logging.getLogger(__name__)

ACADEMIC_SECTIONS = (
    "Abstract",
    "Introduction",
    "Background",
    "Literature Review",
    "Methodology",
    "Materials and Methods",
    "Methods",
    "Experimental Setup",
    "Results",
    "Findings",
    "Discussion",
    "Conclusions",
    "Conclusion",
    "Summary",
    "References",
    "Bibliography",
    "Acknowledgements",
    "Acknowledgments",
    "Appendix",
    "摘要",
    "引言",
    "前言",
    "绪论",
    "研究背景",
    "文献综述",
    "材料与方法",
    "方法",
    "实验",
    "结果",
    "讨论",
    "结论",
    "参考文献",
    "致谢",
    "附录",
)

# A heading is either Markdown syntax or a line holding an (optionally
# numbered) academic section name followed by a short tail without sentence
# punctuation.
SECTION_HEADING_RE = re.compile(
    r"^(?:#+[ \t]+.*"
    r"|(?:\d+(?:\.\d+)*\.?[ \t]*)?(?:"
    + "|".join(re.escape(name) for name in ACADEMIC_SECTIONS)
    + r")[^\n。！？.!?]{0,40})$",
    re.IGNORECASE | re.MULTILINE,
)

FULL_DOCUMENT_TITLE = "Full Document"
PREAMBLE_TITLE = "Preamble"


def _clean_title(raw_title: str) -> str:
    title = re.sub(r"^#+\s*", "", raw_title)
    title = re.sub(r"^\d+(?:\.\d+)*\.?\s*", "", title)
    return title.strip()


def _chunk_by_headings(content: str) -> List[Chunk]:
    matches = list(SECTION_HEADING_RE.finditer(content))
    if not matches:
        return []
    chunks: List[Chunk] = []
    preamble = content[: matches[0].start()].strip()
    if preamble:
        chunks.append(Chunk(PREAMBLE_TITLE, PREAMBLE_TITLE, preamble))
    for position, match in enumerate(matches):
        end = (
            matches[position + 1].start()
            if position + 1 < len(matches)
            else len(content)
        )
        raw_title = match.group(0).strip()
        body = content[match.start() : end].strip()
        chunks.append(Chunk(_clean_title(raw_title), raw_title, body))
    return chunks


def _chunk_by_paragraphs(paragraphs: Sequence[str], per_chunk: int) -> List[Chunk]:
    chunks: List[Chunk] = []
    for start in range(0, len(paragraphs), per_chunk):
        title = f"Part {len(chunks) + 1}"
        group = paragraphs[start : start + per_chunk]
        chunks.append(Chunk(title, title, "\n\n".join(group)))
    return chunks


def _chunk_by_characters(content: str, max_chars: int) -> List[Chunk]:
    chunks: List[Chunk] = []
    start = 0
    while start < len(content):
        end = min(start + max_chars, len(content))
        boundary = end
        if end < len(content):
            boundary = content.rfind("\n\n", start, end)
            if boundary <= start:
                boundary = content.rfind("\n", start, end)
            if boundary <= start:
                boundary = end
        segment = content[start:boundary].strip()
        if segment:
            title = f"Part {len(chunks) + 1}"
            chunks.append(Chunk(title, title, segment))
        start = boundary
    return chunks


def chunk_document(
    text: str, settings: ChunkingSettings | None = None
) -> List[Chunk]:
    """
    Split a document into coarse sections.

    Strategies, first match wins: academic/Markdown headings, groups of
    paragraphs, then fixed-size character windows snapped to line breaks.
    """
    settings = settings or ChunkingSettings()
    content = normalize_text(text)
    if not content:
        return []

    chunks = _chunk_by_headings(content)
    if len(chunks) > 1:
        logger.debug("Chunked by headings into %s sections", len(chunks))
        return chunks

    paragraphs = split_paragraphs(content)
    if len(paragraphs) > 1:
        logger.debug("Chunked by paragraphs (%s paragraphs)", len(paragraphs))
        return _chunk_by_paragraphs(paragraphs, settings.paragraphs_per_chunk)

    chunks = _chunk_by_characters(content, settings.max_chunk_chars)
    if chunks:
        logger.debug("Chunked by character windows into %s parts", len(chunks))
        return chunks
    return [Chunk(FULL_DOCUMENT_TITLE, FULL_DOCUMENT_TITLE, content)]


def merge_small_chunks(
    chunks: Sequence[Chunk], settings: ChunkingSettings | None = None
) -> List[Chunk]:
    """Fold undersized chunks into their successor while the result fits."""
    settings = settings or ChunkingSettings()
    if len(chunks) <= 1:
        return list(chunks)

    merged: List[Chunk] = []
    current = chunks[0]
    for following in chunks[1:]:
        combined = len(current.content) + 2 + len(following.content)
        if (
            len(current.content) < settings.min_chunk_chars
            and combined <= settings.max_chunk_chars
        ):
            current = Chunk(
                title=f"{current.title} + {following.title}",
                raw_title=current.raw_title,
                content=f"{current.content}\n\n{following.content}",
            )
        else:
            merged.append(current)
            current = following
    merged.append(current)
    return [chunk for chunk in merged if chunk.content.strip()]


def neighbor_context(
    chunks: Sequence[Chunk], index: int, lines: int
) -> Tuple[str, str]:
    """Return trailing lines of the previous chunk and leading lines of the next."""
    if lines <= 0:
        return "", ""
    before = ""
    after = ""
    if index > 0:
        before = "\n".join(chunks[index - 1].content.split("\n")[-lines:])
    if index < len(chunks) - 1:
        after = "\n".join(chunks[index + 1].content.split("\n")[:lines])
    return before, after
