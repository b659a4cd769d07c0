from __future__ import annotations

import json
import logging
import os
from dataclasses import replace as dc_replace
from pathlib import Path
from typing import Any, Dict, List, TypedDict

import typer
import yaml

from .analysis import AnalysisMode, run_analysis
from .chunking import chunk_document, merge_small_chunks
from .config import OpenAISettings, PaperMirrorConfig, load_config
from .errors import PaperMirrorError
from .llm import OpenAIRewriteClient
from .models import ProgressUpdate
from .pipeline import run_workflow
from .rewriting import NoOpRewriter, OpenAIRewriter, Rewriter
from .tokenization import get_sentence_tokens, tokenize_document

app = typer.Typer(help="PaperMirror academic style-transfer CLI.", no_args_is_help=True)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class ChunkSummary(TypedDict):
    index: int
    title: str
    chars: int
    sentence_tokens: int


@app.callback()
def configure(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log batch-level progress at DEBUG level."
    ),
) -> None:
    """PaperMirror: rewrite a draft in the style of a sample document."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT
    )


@app.command()
def rewrite(
    sample: Path = typer.Option(
        ..., exists=True, readable=True, dir_okay=False, help="Style sample document."
    ),
    draft: Path = typer.Option(
        ..., exists=True, readable=True, dir_okay=False, help="Draft to restyle."
    ),
    output_path: Path = typer.Option(..., file_okay=False),
    config: Path | None = typer.Option(None, "--config", "-c"),
    mode: str | None = typer.Option(
        None, "--mode", help="Rewrite mode: 'sentence_edits' or 'full_text'."
    ),
    analysis_mode: str | None = typer.Option(
        None,
        "--analysis-mode",
        help="Local analysis: 'none', 'fidelity_only' or 'full'.",
    ),
    openai_enabled: bool | None = typer.Option(
        None,
        "--openai-enabled/--openai-disabled",
        help="Toggle OpenAI-backed rewriting.",
    ),
    openai_model: str | None = typer.Option(
        None, "--openai-model", help="OpenAI model identifier (e.g., gpt-4.1-mini)."
    ),
    openai_api_key: str | None = typer.Option(
        None, "--openai-api-key", help="Explicit OpenAI API key (prefer env vars)."
    ),
    openai_api_key_env: str | None = typer.Option(
        None,
        "--openai-api-key-env",
        help="Environment variable to read the OpenAI API key from.",
    ),
    openai_base_url: str | None = typer.Option(
        None, "--openai-base-url", help="Custom OpenAI base URL (Azure, proxy, etc.)."
    ),
    openai_temperature: float | None = typer.Option(
        None, "--openai-temperature", help="Sampling temperature for rewrites."
    ),
    openai_request_timeout: float | None = typer.Option(
        None, "--openai-request-timeout", help="Request timeout (seconds)."
    ),
) -> None:
    """Restyle the draft after the sample and save the outputs plus a report."""
    # Load the configuration, then fold CLI overrides into it.
    cfg = _apply_mode_overrides(load_config(config), mode, analysis_mode)
    _apply_openai_overrides(
        cfg.openai,
        openai_enabled,
        openai_model,
        openai_api_key,
        openai_api_key_env,
        openai_base_url,
        openai_temperature,
        openai_request_timeout,
    )
    rewriter = _build_rewriter(cfg)
    sample_text = _read_text(sample)
    draft_text = _read_text(draft)

    try:
        result = run_workflow(
            sample_text, draft_text, cfg, rewriter, on_progress=_echo_progress
        )
    except PaperMirrorError as exc:
        raise typer.BadParameter(str(exc)) from exc

    output_path.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for name, text in (
        ("conservative.md", result.conservative),
        ("standard.md", result.standard),
        ("enhanced.md", result.enhanced),
    ):
        # Sentence-edit mode only produces the standard variant.
        if text is None:
            continue
        dest = output_path / name
        dest.write_text(text, encoding="utf-8")
        written.append(dest)

    report_path = output_path / "report.json"
    report: Dict[str, Any] = (
        result.analysis_report.to_dict() if result.analysis_report else {}
    )
    report_path.write_text(
        json.dumps(report, indent=2, ensure_ascii=False), encoding="utf-8"
    )
    typer.echo(
        f"Wrote {', '.join(p.name for p in written)} and report to {output_path}"
    )


@app.command()
def analyze(
    sample: Path = typer.Option(..., exists=True, readable=True, dir_okay=False),
    draft: Path = typer.Option(..., exists=True, readable=True, dir_okay=False),
    rewritten: Path | None = typer.Option(
        None,
        exists=True,
        readable=True,
        dir_okay=False,
        help="Rewritten output; defaults to the draft itself.",
    ),
    config: Path | None = typer.Option(None, "--config", "-c"),
) -> None:
    """Run the local metrics, mirror score, fidelity and citation checks."""
    cfg = load_config(config)
    draft_text = _read_text(draft)
    rewritten_text = _read_text(rewritten) if rewritten else draft_text
    analysis = run_analysis(
        AnalysisMode.FULL,
        _read_text(sample),
        draft_text,
        rewritten_text,
        fidelity_settings=cfg.fidelity,
    )
    typer.echo(json.dumps(analysis.to_dict(), indent=2, ensure_ascii=False))


@app.command()
def segment(
    input_path: Path = typer.Option(..., exists=True, readable=True, dir_okay=False),
    config: Path | None = typer.Option(None, "--config", "-c"),
) -> None:
    """Show how a document is split into chunks and sentence tokens."""
    cfg = load_config(config)
    text = _read_text(input_path)
    chunks = merge_small_chunks(chunk_document(text, cfg.chunking), cfg.chunking)
    summary: List[ChunkSummary] = []
    for index, chunk in enumerate(chunks):
        tokens = tokenize_document(chunk.content, cfg.tokenizer)
        summary.append(
            {
                "index": index,
                "title": chunk.title,
                "chars": len(chunk.content),
                "sentence_tokens": len(get_sentence_tokens(tokens)),
            }
        )
    typer.echo(json.dumps({"chunks": summary}, indent=2, ensure_ascii=False))


@app.command("print-config")
def print_config() -> None:
    """Print the default configuration as YAML."""
    cfg = PaperMirrorConfig()
    typer.echo(yaml.safe_dump(cfg.to_dict(), sort_keys=False, allow_unicode=True))


def main() -> None:
    app()


def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def _echo_progress(update: ProgressUpdate) -> None:
    # Batch-level updates carry no payload; only surface chunk milestones.
    if update.payload is not None or update.current is None:
        typer.echo(update.stage, err=True)


def _apply_mode_overrides(
    config: PaperMirrorConfig, mode: str | None, analysis_mode: str | None
) -> PaperMirrorConfig:
    """Return a config with mode overrides applied and re-validated."""
    changes: Dict[str, str] = {}
    if mode:
        changes["rewrite_mode"] = mode
    if analysis_mode:
        changes["analysis_mode"] = analysis_mode
    if not changes:
        return config
    try:
        return dc_replace(config, **changes)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _apply_openai_overrides(
    settings: OpenAISettings,
    openai_enabled: bool | None,
    openai_model: str | None,
    openai_api_key: str | None,
    openai_api_key_env: str | None,
    openai_base_url: str | None,
    openai_temperature: float | None,
    openai_request_timeout: float | None,
) -> None:
    """Override OpenAI settings from CLI flags."""
    if openai_enabled is not None:
        settings.enabled = openai_enabled
    if openai_model:
        settings.model = openai_model
    if openai_api_key:
        settings.api_key = openai_api_key
    if openai_api_key_env:
        settings.api_key_env = openai_api_key_env
    if openai_base_url:
        settings.base_url = openai_base_url
    if openai_temperature is not None:
        settings.temperature = openai_temperature
    if openai_request_timeout is not None:
        settings.request_timeout = openai_request_timeout


def _build_rewriter(config: PaperMirrorConfig) -> Rewriter:
    """Instantiate the configured rewriter implementation for the current run."""
    if config.openai.enabled:
        api_key = _resolve_openai_api_key(config.openai)
        client = OpenAIRewriteClient(config.openai, api_key=api_key)
        return OpenAIRewriter(client)
    typer.echo(
        "No LLM client configured; the draft is passed through unchanged.",
        err=True,
    )
    return NoOpRewriter()


def _resolve_openai_api_key(settings: OpenAISettings) -> str:
    """Resolve the API key from explicit config or the configured environment variable."""
    if settings.api_key:
        return settings.api_key
    env_name = settings.api_key_env or "OPENAI_API_KEY"
    if env_name in os.environ:
        return os.environ[env_name]
    raise RuntimeError(
        "OpenAI API key not provided. Use --openai-api-key or set the configured "
        "environment variable."
    )


if __name__ == "__main__":  # pragma: no cover
    main()
