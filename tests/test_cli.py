import json
from pathlib import Path
from typing import Any

from pytest import MonkeyPatch
from typer.testing import CliRunner

from papermirror.cli import app
from papermirror.models import Replacement
from papermirror.rewriting import NoOpRewriter, Replacements

runner = CliRunner()

SAMPLE = "近年来，深度学习受到广泛关注。因此，研究者提出了多种模型。"
DRAFT = (
    "# Introduction\n\n"
    "The storm of requests slowed the server. Latency rose to 35.7% above baseline."
)


def test_cli_rewrite_writes_standard_and_report(tmp_path: Path):
    """rewrite command emits the standard output and a JSON report."""
    sample, draft, config = _create_inputs(tmp_path)
    output_dir = tmp_path / "out"
    result = runner.invoke(
        app,
        [
            "rewrite",
            "--sample",
            str(sample),
            "--draft",
            str(draft),
            "--output-path",
            str(output_dir),
            "--config",
            str(config),
        ],
    )
    assert result.exit_code == 0
    assert (output_dir / "standard.md").read_text(encoding="utf-8") == DRAFT
    assert not (output_dir / "conservative.md").exists()
    report = json.loads((output_dir / "report.json").read_text(encoding="utf-8"))
    assert report["status"] == "complete"
    assert report["analysis"]["mode"] == "full"


def test_cli_rewrite_full_text_writes_three_variants(tmp_path: Path):
    sample, draft, config = _create_inputs(tmp_path)
    output_dir = tmp_path / "out"
    result = runner.invoke(
        app,
        [
            "rewrite",
            "--sample",
            str(sample),
            "--draft",
            str(draft),
            "--output-path",
            str(output_dir),
            "--config",
            str(config),
            "--mode",
            "full_text",
            "--analysis-mode",
            "none",
        ],
    )
    assert result.exit_code == 0
    for name in ("conservative.md", "standard.md", "enhanced.md"):
        assert (output_dir / name).exists()
    report = json.loads((output_dir / "report.json").read_text(encoding="utf-8"))
    assert report["analysis"] == {"mode": "none"}


def test_cli_rewrite_rejects_unknown_mode(tmp_path: Path):
    sample, draft, config = _create_inputs(tmp_path)
    result = runner.invoke(
        app,
        [
            "rewrite",
            "--sample",
            str(sample),
            "--draft",
            str(draft),
            "--output-path",
            str(tmp_path / "out"),
            "--mode",
            "paraphrase",
        ],
    )
    assert result.exit_code != 0
    assert not (tmp_path / "out").exists()


def test_cli_print_config():
    """print-config command dumps the current configuration values."""
    result = runner.invoke(app, ["print-config"])
    assert result.exit_code == 0
    assert "degradation_chain" in result.stdout
    assert "rewrite_mode: sentence_edits" in result.stdout


def test_cli_analyze_outputs_full_analysis(tmp_path: Path):
    sample, draft, _ = _create_inputs(tmp_path)
    rewritten = tmp_path / "rewritten.md"
    rewritten.write_text(DRAFT.replace("35.7%", "a third"), encoding="utf-8")
    result = runner.invoke(
        app,
        [
            "analyze",
            "--sample",
            str(sample),
            "--draft",
            str(draft),
            "--rewritten",
            str(rewritten),
        ],
    )
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["mode"] == "full"
    assert "mirror_score" in payload
    alerts = payload["fidelity"]["alerts"]
    assert [alert["token"] for alert in alerts] == ["35.7%"]


def test_cli_segment_lists_chunks(tmp_path: Path):
    _, draft, _ = _create_inputs(tmp_path)
    result = runner.invoke(app, ["segment", "--input-path", str(draft)])
    assert result.exit_code == 0
    chunks = json.loads(result.stdout)["chunks"]
    assert len(chunks) == 1
    assert chunks[0]["title"] == "Introduction"
    assert chunks[0]["chars"] == len(DRAFT)
    assert chunks[0]["sentence_tokens"] == 3


def test_cli_rewrite_with_openai_options(
    monkeypatch: MonkeyPatch, tmp_path: Path
) -> None:
    """rewrite command wires OpenAI settings into the rewriter when enabled."""
    sample, draft, config = _create_inputs(tmp_path)
    output_dir = tmp_path / "rewritten"
    calls: dict[str, Any] = {}

    class DummyClient:
        def __init__(self, settings: Any, api_key: str) -> None:
            calls["settings"] = settings
            calls["api_key"] = api_key

    class DummyRewriter(NoOpRewriter):
        def __init__(self, client: DummyClient) -> None:
            self._client = client

        def rewrite_sentences(self, request: Any) -> Replacements:
            return Replacements(
                [
                    Replacement(s.index, s.text.replace("storm", "flood"))
                    for s in request.sentences
                    if "storm" in s.text
                ]
            )

    monkeypatch.setattr("papermirror.cli.OpenAIRewriteClient", DummyClient)
    monkeypatch.setattr("papermirror.cli.OpenAIRewriter", DummyRewriter)

    result = runner.invoke(
        app,
        [
            "rewrite",
            "--sample",
            str(sample),
            "--draft",
            str(draft),
            "--output-path",
            str(output_dir),
            "--config",
            str(config),
            "--openai-enabled",
            "--openai-model",
            "gpt-4.1-mini",
            "--openai-request-timeout",
            "30",
        ],
        env={"OPENAI_API_KEY": "dummy-key"},
    )
    assert result.exit_code == 0
    standard = (output_dir / "standard.md").read_text(encoding="utf-8")
    assert "The flood of requests" in standard
    assert calls["settings"].model == "gpt-4.1-mini"
    assert calls["settings"].request_timeout == 30.0
    assert calls["api_key"] == "dummy-key"


def _create_inputs(tmp_path: Path) -> tuple[Path, Path, Path]:
    """Write a sample, a draft and a config without inter-request delays."""
    sample = tmp_path / "sample.md"
    sample.write_text(SAMPLE, encoding="utf-8")
    draft = tmp_path / "draft.md"
    draft.write_text(DRAFT, encoding="utf-8")
    config = tmp_path / "config.yaml"
    config.write_text(
        "batching:\n  inter_batch_delay: 0.0\n  inter_chunk_delay: 0.0\n",
        encoding="utf-8",
    )
    return sample, draft, config
