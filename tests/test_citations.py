from papermirror.analysis.citations import (
    MAX_ITEMS,
    RULES_VERSION,
    citation_reason,
    extract_key_terms,
    generate_citation_suggestions,
)


def test_background_claim_needs_citation():
    assert citation_reason("近年来，深度学习受到广泛关注。") == "background"


def test_own_work_is_never_flagged():
    """Claims about the author's own contribution do not need references."""
    assert citation_reason("本文提出了一种基于注意力的模型。") is None
    assert citation_reason("We propose a new scheduler compared with baselines.") is None


def test_categories_are_detected():
    assert citation_reason("该指标被定义为召回率的均值。") == "definition"
    assert citation_reason("系统采用经典的聚类方法。") == "method"
    assert citation_reason("The approach outperforms earlier systems.") == "comparison"
    assert citation_reason("据统计，用户数量大幅上升。") == "statistic"
    assert citation_reason("天气很好。") is None


def test_key_terms_include_english_and_technical_chinese():
    terms = extract_key_terms("基于Transformer模型的机器翻译方法得到应用。")
    assert "Transformer" in terms
    assert any(term.endswith("方法") for term in terms)


def test_suggestions_are_indexed_clipped_and_capped():
    long_claim = "近年来" + "很多" * 60 + "。"
    draft = "普通的句子。" + long_claim + "近年来研究发现规律。" * 30
    suggestions = generate_citation_suggestions(draft)
    assert suggestions.rules_version == RULES_VERSION
    assert len(suggestions.items) == MAX_ITEMS
    first = suggestions.items[0]
    assert first.sentence_index == 1
    assert first.reason == "background"
    assert first.sentence_text.endswith("...")
    assert len(first.sentence_text) == 103
    assert first.queries


def test_fallback_query_uses_sentence_prefix():
    suggestions = generate_citation_suggestions("据统计，用户数量大幅上升。")
    assert suggestions.items[0].queries == ["据统计用户数量大幅上升 统计"]
