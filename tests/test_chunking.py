from papermirror.chunking import (
    chunk_document,
    merge_small_chunks,
    neighbor_context,
)
from papermirror.config import ChunkingSettings
from papermirror.models import Chunk


def test_chunk_by_markdown_headings_keeps_preamble():
    """Text before the first heading is kept as its own chunk."""
    text = (
        "A short title block.\n\n"
        "# Introduction\n\nThe first section body.\n\n"
        "# Methods\n\nThe second section body."
    )
    chunks = chunk_document(text)
    assert [chunk.title for chunk in chunks] == ["Preamble", "Introduction", "Methods"]
    assert chunks[1].content == "# Introduction\n\nThe first section body."
    assert chunks[1].raw_title == "# Introduction"


def test_chunk_by_numbered_academic_sections():
    text = "1. 引言\n研究的动机如下。\n\n2. 方法\n我们采用问卷调查。"
    chunks = chunk_document(text)
    assert [chunk.title for chunk in chunks] == ["引言", "方法"]
    assert chunks[0].raw_title == "1. 引言"


def test_section_name_inside_sentence_is_not_a_heading():
    """A sentence that merely starts with a section word stays body text."""
    text = "Results were stable across runs.\n\nThe other paragraph follows."
    chunks = chunk_document(text)
    assert [chunk.title for chunk in chunks] == ["Part 1"]


def test_chunk_by_paragraph_groups():
    paragraphs = [f"Paragraph number {i} body text." for i in range(5)]
    settings = ChunkingSettings(paragraphs_per_chunk=2)
    chunks = chunk_document("\n\n".join(paragraphs), settings)
    assert [chunk.title for chunk in chunks] == ["Part 1", "Part 2", "Part 3"]
    assert chunks[0].content == "\n\n".join(paragraphs[:2])


def test_chunk_by_characters_for_single_block():
    settings = ChunkingSettings(max_chunk_chars=50)
    chunks = chunk_document("x" * 120, settings)
    assert [len(chunk.content) for chunk in chunks] == [50, 50, 20]


def test_chunk_by_characters_snaps_to_line_break():
    settings = ChunkingSettings(max_chunk_chars=30)
    text = "first line of text\nsecond line of text\nthird"
    chunks = chunk_document(text, settings)
    assert chunks[0].content == "first line of text"


def test_chunk_empty_document():
    assert chunk_document("   ") == []


def test_merge_small_chunks_combines_titles():
    settings = ChunkingSettings(min_chunk_chars=20, max_chunk_chars=100)
    chunks = [
        Chunk("Intro", "# Intro", "short"),
        Chunk("Body", "# Body", "also short"),
        Chunk("End", "# End", "y" * 60),
    ]
    merged = merge_small_chunks(chunks, settings)
    assert [chunk.title for chunk in merged] == ["Intro + Body + End"]
    assert merged[0].raw_title == "# Intro"
    assert merged[0].content == "short\n\nalso short\n\n" + "y" * 60


def test_merge_small_chunks_respects_max_size():
    settings = ChunkingSettings(min_chunk_chars=20, max_chunk_chars=30)
    chunks = [Chunk("A", "A", "tiny"), Chunk("B", "B", "z" * 40)]
    assert merge_small_chunks(chunks, settings) == chunks


def test_neighbor_context_uses_edge_lines():
    chunks = [
        Chunk("A", "A", "a1\na2\na3\na4"),
        Chunk("B", "B", "b1"),
        Chunk("C", "C", "c1\nc2\nc3\nc4"),
    ]
    before, after = neighbor_context(chunks, 1, 2)
    assert before == "a3\na4"
    assert after == "c1\nc2"
    assert neighbor_context(chunks, 0, 2)[0] == ""
    assert neighbor_context(chunks, 2, 2)[1] == ""
