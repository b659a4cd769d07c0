from papermirror.config import TokenizerSettings
from papermirror.models import SentenceToken, SeparatorToken
from papermirror.reconstruction import rebuild_text
from papermirror.textutils import normalize_text, split_sentences
from papermirror.tokenization import (
    create_batches,
    force_split,
    get_sentence_tokens,
    split_long_sentence,
    tokenize_document,
)


def test_tokenize_chinese_sentences_without_separators():
    """Three East-Asian sentences become three indexed tokens and nothing else."""
    tokens = tokenize_document("第一句话。第二句话！第三句话？")
    assert tokens == [
        SentenceToken(0, "第一句话。"),
        SentenceToken(1, "第二句话！"),
        SentenceToken(2, "第三句话？"),
    ]


def test_tokenize_two_paragraphs_keeps_break():
    """The blank line between paragraphs survives as a separator token."""
    text = "甲方提出方案。乙方表示同意。\n\n双方随后签约。"
    tokens = tokenize_document(text)
    assert tokens == [
        SentenceToken(0, "甲方提出方案。"),
        SentenceToken(1, "乙方表示同意。"),
        SeparatorToken("\n\n"),
        SentenceToken(2, "双方随后签约。"),
    ]
    assert rebuild_text(tokens, []) == text


def test_tokenize_english_keeps_inter_sentence_space():
    """Whitespace between English sentences is carried by a separator."""
    tokens = tokenize_document("The model converged. Loss fell to 0.3 overall.")
    assert tokens == [
        SentenceToken(0, "The model converged."),
        SeparatorToken(" "),
        SentenceToken(1, "Loss fell to 0.3 overall."),
    ]


def test_tokenize_round_trip_on_messy_input():
    """Concatenating tokens reproduces the normalized input exactly."""
    text = (
        "# 引言\r\n\r\n\r\n近年来，深度学习发展迅速。  它被广泛应用！\n"
        "第二行没有句号\n\n\nShort. A. Final sentence here?\n\n“引用句。”后文继续。"
    )
    tokens = tokenize_document(text)
    assert rebuild_text(tokens, []) == normalize_text(text)


def test_tokenize_indices_are_contiguous():
    """Sentence indices start at zero and increase by one."""
    text = "一。二号句。三号句！\n\n四号句？五号句。\n\n## 标题\n\n六号句。"
    indices = [token.index for token in get_sentence_tokens(tokenize_document(text))]
    assert indices == list(range(len(indices)))


def test_tokenize_merges_tiny_fragments():
    """A one-character fragment is glued to its neighbour instead of standing alone."""
    tokens = get_sentence_tokens(tokenize_document("。第一句话。"))
    assert [token.text for token in tokens] == ["。第一句话。"]


def test_heading_is_single_token():
    """Markdown headings are never split on punctuation."""
    tokens = tokenize_document("## 1. 方法。概述\n\n正文句子。")
    assert tokens[0] == SentenceToken(0, "## 1. 方法。概述")


def test_heading_line_is_separated_from_body_below_it():
    """Body text directly under a heading is still split into sentences."""
    text = "## 方法\n正文第一句。正文第二句。"
    tokens = tokenize_document(text)
    assert tokens == [
        SentenceToken(0, "## 方法"),
        SeparatorToken("\n"),
        SentenceToken(1, "正文第一句。"),
        SentenceToken(2, "正文第二句。"),
    ]
    assert rebuild_text(tokens, []) == text


def test_empty_document_has_no_tokens():
    assert tokenize_document("  \n\n  ") == []


def test_force_split_is_lossless_and_bounded():
    """Force split prefers break characters and never loses text."""
    text = "数据" * 30 + "，" + "结果" * 40
    pieces = force_split(text, max_size=70, lookback=20)
    assert "".join(pieces) == text
    assert all(len(piece) <= 70 for piece in pieces)
    assert pieces[0].endswith("，")


def test_force_split_hard_cut_without_break_chars():
    pieces = force_split("x" * 25, max_size=10)
    assert pieces == ["x" * 10, "x" * 10, "x" * 5]


def test_split_long_sentence_uses_clauses_first():
    """Overlong sentences are split after clause punctuation."""
    settings = TokenizerSettings(max_sentence_chars=20, force_split_chunk_size=15)
    sentence = "第一部分的内容比较长，第二部分也不短；最后结束。"
    pieces = split_long_sentence(sentence, settings)
    assert "".join(pieces) == sentence
    assert pieces[0] == "第一部分的内容比较长，"
    assert len(pieces) == 3


def test_long_sentence_becomes_several_tokens():
    settings = TokenizerSettings(max_sentence_chars=20, force_split_chunk_size=15)
    text = "第一部分的内容比较长，第二部分也不短；最后结束。"
    tokens = tokenize_document(text, settings)
    assert len(get_sentence_tokens(tokens)) == 3
    assert rebuild_text(tokens, []) == text


def test_create_batches_groups_in_order():
    sentences = [SentenceToken(i, f"句{i}。") for i in range(5)]
    batches = create_batches(sentences, 2)
    assert [[s.index for s in batch] for batch in batches] == [[0, 1], [2, 3], [4]]


def test_split_sentences_skips_headings_and_numbers_globally():
    """Statistical splitting ignores heading lines and indexes across paragraphs."""
    sentences = split_sentences("# 标题\n\n第一句。第二句！\n\n第三句？")
    assert [(s.index, s.text) for s in sentences] == [
        (0, "第一句。"),
        (1, "第二句！"),
        (2, "第三句？"),
    ]


def test_normalize_text_collapses_whitespace():
    assert normalize_text("  a\t\tb\r\n\r\n\r\n\r\nc  ") == "a b\n\nc"
