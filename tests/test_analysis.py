from __future__ import annotations

import pytest

from papermirror.analysis import (
    AnalysisMode,
    FidelityOnly,
    FullAnalysis,
    NoAnalysis,
    build_analysis_report,
    calculate_fidelity_guardrails,
    calculate_metrics,
    extract_acronyms,
    extract_numbers,
    generate_mirror_score,
)
from papermirror.analysis.metrics import ConnectorCounts, percentile
from papermirror.analysis.mirror_score import MirrorWeights, connector_distance

SAMPLE = (
    "# 引言\n\n"
    "近年来，深度学习受到广泛关注。因此，研究者提出了多种模型；然而，效率问题仍然存在。\n\n"
    "此外，本文讨论了批处理（batching）策略。"
)


def test_percentile_interpolates():
    assert percentile([10, 20, 30, 40], 50) == 25.0
    assert percentile([10, 20, 30, 40], 90) == pytest.approx(37.0)
    assert percentile([], 90) == 0.0
    assert percentile([7], 90) == 7.0


def test_calculate_metrics_counts_body_only():
    """Heading lines do not count towards length or punctuation density."""
    metrics = calculate_metrics(SAMPLE)
    assert metrics.sentence_count == 3
    assert metrics.text_length_chars == len(SAMPLE.split("\n\n", 1)[1])
    assert metrics.connector_counts.causal == 1
    assert metrics.connector_counts.adversative == 1
    assert metrics.connector_counts.additive == 1
    assert metrics.punctuation_density.semicolon > 0
    assert metrics.punctuation_density.parenthesis > 0
    assert metrics.template_counts.count == 2


def test_calculate_metrics_english_connectors_use_word_boundaries():
    metrics = calculate_metrics(
        "However, the loss dropped. Therefore we stopped. The thesis was long."
    )
    assert metrics.connector_counts.adversative == 1
    assert metrics.connector_counts.causal == 1
    assert metrics.sentence_count == 3


def test_calculate_metrics_empty_text():
    metrics = calculate_metrics("")
    assert metrics.sentence_count == 0
    assert metrics.sentence_length.mean == 0.0
    assert metrics.punctuation_density.comma == 0.0


def test_long_rate_is_percentage_over_fifty_chars():
    text = "短句。" + "长" * 60 + "。"
    metrics = calculate_metrics(text)
    assert metrics.sentence_length.long_rate == 50.0


def test_mirror_score_identical_inputs():
    """Identical sample, draft and output score 100 with zero improvement."""
    score = generate_mirror_score(SAMPLE, SAMPLE, SAMPLE)
    assert score.draft_to_sample == 100.0
    assert score.standard_to_sample == 100.0
    assert score.improvement == 0.0


def test_mirror_score_rewards_moving_towards_sample():
    draft = "我们做了实验。结果很好。"
    score = generate_mirror_score(SAMPLE, draft, SAMPLE)
    assert score.standard_to_sample == 100.0
    assert score.draft_to_sample < 100.0
    assert score.improvement > 0


def test_connector_distance_is_bounded():
    opposite = connector_distance(ConnectorCounts(causal=3), ConnectorCounts(emphatic=2))
    assert opposite == 1.0
    assert connector_distance(ConnectorCounts(), ConnectorCounts()) == 0.0


def test_mirror_weights_must_sum_to_one():
    with pytest.raises(ValueError):
        MirrorWeights(sentence=0.5, connectors=0.5, punctuation=0.5, templates=0.5)


def test_extract_numbers_handles_units_and_cjk_neighbours():
    numbers = extract_numbers("准确率为35.7%，延迟12ms，共3e5条样本，2023年发布，版本v2。")
    assert numbers == ["35.7%", "12ms", "3e5", "2023"]


def test_extract_acronyms_respects_min_length():
    text = "We use BERT and GPU2 with an A test via NLP模型."
    assert extract_acronyms(text) == ["BERT", "GPU2", "NLP"]
    assert extract_acronyms(text, min_length=4) == ["BERT"]


def test_fidelity_missing_percentage_raises_one_alert():
    """Dropping 35.7% yields a single number_loss alert located in the draft."""
    draft = "背景介绍。实验准确率达到35.7%。"
    rewritten = "背景介绍。实验准确率较高。"
    guardrails = calculate_fidelity_guardrails(draft, rewritten)
    number_alerts = [a for a in guardrails.alerts if a.type == "number_loss"]
    assert len(number_alerts) == 1
    assert number_alerts[0].token == "35.7%"
    assert "35.7%" in number_alerts[0].detail
    assert number_alerts[0].sentence_index == 1
    assert guardrails.number_retention_rate < 100


def test_fidelity_alert_points_at_sentence_with_whole_number():
    """A lost 5 is located in its own sentence, not inside 15 or 2025."""
    draft = "2025年共有15个样本。其中5个失败。"
    rewritten = "2025年共有15个样本。其中少数失败。"
    guardrails = calculate_fidelity_guardrails(draft, rewritten)
    assert [(a.token, a.sentence_index) for a in guardrails.alerts] == [("5", 1)]


def test_fidelity_without_numbers_is_full_retention():
    guardrails = calculate_fidelity_guardrails("没有数字的句子。", "完全不同的句子。")
    assert guardrails.number_retention_rate == 100.0
    assert guardrails.acronym_retention_rate == 100.0
    assert guardrails.alerts == []


def test_fidelity_retention_in_range_and_alerts_capped():
    draft = " ".join(f"Value {i}." for i in range(1, 30))
    guardrails = calculate_fidelity_guardrails(draft, "Value 1.", max_alerts=5)
    assert 0 <= guardrails.number_retention_rate <= 100
    assert len(guardrails.alerts) == 5


def test_fidelity_acronym_loss_reported():
    guardrails = calculate_fidelity_guardrails("We evaluate BERT on GLUE.", "We evaluate it on GLUE.")
    assert guardrails.acronym_retention_rate == 50.0
    assert [(a.type, a.token) for a in guardrails.alerts] == [("acronym_change", "BERT")]


def test_report_variants_follow_mode():
    none = build_analysis_report(AnalysisMode.NONE, SAMPLE, SAMPLE, SAMPLE)
    fidelity = build_analysis_report("fidelity_only", SAMPLE, SAMPLE, SAMPLE)
    full = build_analysis_report("full", SAMPLE, SAMPLE, SAMPLE)
    assert isinstance(none.analysis, NoAnalysis)
    assert isinstance(fidelity.analysis, FidelityOnly)
    assert isinstance(full.analysis, FullAnalysis)
    assert full.to_dict()["analysis"]["mirror_score"]["improvement"] == 0.0


def test_report_status_and_message():
    complete = build_analysis_report("none", "", "x", "x")
    assert complete.status == "complete"
    assert complete.message == "Processing completed. Failed chunks: 0, Failed sentences: 0"

    partial = build_analysis_report(
        "none", "", "x", "x", failed_sentences=2, warnings=["Fallback used."]
    )
    assert partial.status == "partial"
    assert "Failed sentences: 2" in partial.message
    assert partial.message.endswith("Fallback used.")
