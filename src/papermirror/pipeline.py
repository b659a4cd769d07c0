from __future__ import annotations

import logging
import time
from typing import Callable, List, Sequence, Tuple

from .analysis.report import build_analysis_report
from .batching import BatchScheduler
from .chunking import chunk_document, merge_small_chunks, neighbor_context
from .config import PaperMirrorConfig, TokenizerSettings
from .errors import EmptyDocumentError
from .models import (
    Chunk,
    ChunkOutcome,
    DocumentContext,
    MigrationResult,
    ProgressCallback,
    ProgressUpdate,
    StyleGuide,
)
from .reconstruction import PARAGRAPH_SEPARATOR, rebuild_text
from .rewriting import ChunkRewriteRequest, NoOpRewriter, Rewriter
from .textutils import is_markdown_heading, normalize_text
from .tokenization import get_sentence_tokens, tokenize_document

logger = logging.getLogger(__name__)


def _notify(
    on_progress: ProgressCallback | None,
    stage: str,
    current: int | None = None,
    total: int | None = None,
    payload: MigrationResult | None = None,
) -> None:
    if on_progress is not None:
        on_progress(ProgressUpdate(stage, current, total, payload))


def _prepare(
    sample_text: str,
    draft_text: str,
    config: PaperMirrorConfig,
    rewriter: Rewriter,
    on_progress: ProgressCallback | None,
) -> Tuple[StyleGuide, DocumentContext, List[str]]:
    """Extract the style guide and document context, substituting defaults if allowed."""
    warnings: List[str] = []

    _notify(on_progress, "Extracting style guide from sample")
    try:
        style_guide = rewriter.extract_style_guide(sample_text)
    except Exception as exc:
        if not config.fallback_on_context_failure:
            raise
        logger.warning("Style guide extraction failed, using defaults: %s", exc)
        style_guide = StyleGuide.default()
        warnings.append("Style guide extraction failed; default style guide used.")

    _notify(on_progress, "Generating document context")
    try:
        document_context = rewriter.generate_document_context(draft_text)
    except Exception as exc:
        if not config.fallback_on_context_failure:
            raise
        logger.warning("Document context generation failed, continuing without: %s", exc)
        document_context = DocumentContext.empty()
        warnings.append("Document context generation failed; empty context used.")

    return style_guide, document_context, warnings


def _segment(draft_text: str, config: PaperMirrorConfig) -> List[Chunk]:
    chunks = merge_small_chunks(
        chunk_document(draft_text, config.chunking), config.chunking
    )
    logger.info("Draft segmented into %s chunk(s)", len(chunks))
    return chunks


def rewrite_chunk_with_sentence_edits(
    chunk: Chunk,
    scheduler: BatchScheduler,
    style_guide: StyleGuide,
    *,
    global_context: str = "",
    context_before: str = "",
    context_after: str = "",
    chunk_index: int = 0,
    total_chunks: int = 1,
    tokenizer_settings: TokenizerSettings | None = None,
) -> ChunkOutcome:
    """Tokenize one chunk, rewrite its sentences in batches and rebuild it."""
    tokens = tokenize_document(chunk.content, tokenizer_settings)
    sentences = [
        token
        for token in get_sentence_tokens(tokens)
        if not is_markdown_heading(token.text)
    ]
    logger.info(
        "Chunk %s/%s (%s): %s tokens, %s rewritable sentences",
        chunk_index + 1,
        total_chunks,
        chunk.title,
        len(tokens),
        len(sentences),
    )
    state = scheduler.run(
        sentences,
        style_guide,
        global_context=global_context,
        context_before=context_before,
        context_after=context_after,
        chunk_index=chunk_index,
        total_chunks=total_chunks,
    )
    return ChunkOutcome(
        content=rebuild_text(tokens, state.replacements),
        replacements=list(state.replacements),
        failed_indices=list(state.failed_indices),
    )


def run_sentence_edits_workflow(
    sample_text: str,
    draft_text: str,
    config: PaperMirrorConfig,
    rewriter: Rewriter,
    on_progress: ProgressCallback | None = None,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> MigrationResult:
    """Rewrite the draft sentence by sentence; only ``standard`` is populated."""
    style_guide, document_context, warnings = _prepare(
        sample_text, draft_text, config, rewriter, on_progress
    )
    chunks = _segment(draft_text, config)
    global_context = document_context.document_summary[
        : config.chunking.global_context_chars
    ]
    scheduler = BatchScheduler(
        rewriter, config.batching, clock=clock, sleep=sleep, on_progress=on_progress
    )

    outputs: List[str] = []
    failed_chunks = 0
    failed_sentences = 0
    total = len(chunks)
    for index, chunk in enumerate(chunks):
        _notify(
            on_progress,
            f"Processing chunk {index + 1}/{total}: {chunk.title}",
            index + 1,
            total,
        )
        before, after = neighbor_context(chunks, index, config.chunking.context_lines)
        try:
            outcome = rewrite_chunk_with_sentence_edits(
                chunk,
                scheduler,
                style_guide,
                global_context=global_context,
                context_before=before,
                context_after=after,
                chunk_index=index,
                total_chunks=total,
                tokenizer_settings=config.tokenizer,
            )
        except Exception:
            logger.exception(
                "Chunk %s/%s (%s) failed; keeping original text",
                index + 1,
                total,
                chunk.title,
            )
            failed_chunks += 1
            outputs.append(chunk.content)
        else:
            failed_sentences += len(outcome.failed_indices)
            outputs.append(outcome.content)

        _notify(
            on_progress,
            f"Completed chunk {index + 1}/{total}",
            index + 1,
            total,
            MigrationResult(standard=PARAGRAPH_SEPARATOR.join(outputs)),
        )
        if index < total - 1 and config.batching.inter_chunk_delay > 0:
            sleep(config.batching.inter_chunk_delay)

    standard = PARAGRAPH_SEPARATOR.join(outputs)
    _notify(on_progress, "Running local analysis")
    report = build_analysis_report(
        config.analysis_mode,
        sample_text,
        draft_text,
        standard,
        failed_chunks=failed_chunks,
        failed_sentences=failed_sentences,
        warnings=warnings,
        fidelity_settings=config.fidelity,
    )
    result = MigrationResult(standard=standard, analysis_report=report)
    _notify(on_progress, "Completed", total, total, result)
    return result


def run_full_text_workflow(
    sample_text: str,
    draft_text: str,
    config: PaperMirrorConfig,
    rewriter: Rewriter,
    on_progress: ProgressCallback | None = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> MigrationResult:
    """Rewrite whole chunks into conservative, standard and enhanced variants."""
    style_guide, document_context, warnings = _prepare(
        sample_text, draft_text, config, rewriter, on_progress
    )
    chunks = _segment(draft_text, config)

    conservative: List[str] = []
    standard: List[str] = []
    enhanced: List[str] = []
    failed_chunks = 0
    total = len(chunks)
    for index, chunk in enumerate(chunks):
        _notify(
            on_progress,
            f"Rewriting chunk {index + 1}/{total}: {chunk.title}",
            index + 1,
            total,
        )
        before, after = neighbor_context(chunks, index, config.chunking.context_lines)
        request = ChunkRewriteRequest(
            content=chunk.content,
            style_guide=style_guide,
            document_context=document_context,
            section_title=chunk.raw_title or chunk.title,
            context_before=before,
            context_after=after,
            chunk_index=index,
        )
        try:
            rewritten = rewriter.rewrite_chunk(request)
        except Exception:
            logger.exception(
                "Chunk %s/%s (%s) failed; keeping original text",
                index + 1,
                total,
                chunk.title,
            )
            failed_chunks += 1
            conservative.append(chunk.content)
            standard.append(chunk.content)
            enhanced.append(chunk.content)
        else:
            conservative.append(rewritten.conservative)
            standard.append(rewritten.standard)
            enhanced.append(rewritten.enhanced)

        _notify(
            on_progress,
            f"Completed chunk {index + 1}/{total}",
            index + 1,
            total,
            _join_variants(conservative, standard, enhanced),
        )
        if index < total - 1 and config.batching.inter_chunk_delay > 0:
            sleep(config.batching.inter_chunk_delay)

    result = _join_variants(conservative, standard, enhanced)
    _notify(on_progress, "Running local analysis")
    result.analysis_report = build_analysis_report(
        config.analysis_mode,
        sample_text,
        draft_text,
        result.standard or "",
        failed_chunks=failed_chunks,
        warnings=warnings,
        fidelity_settings=config.fidelity,
    )
    _notify(on_progress, "Completed", total, total, result)
    return result


def _join_variants(
    conservative: Sequence[str], standard: Sequence[str], enhanced: Sequence[str]
) -> MigrationResult:
    return MigrationResult(
        conservative=PARAGRAPH_SEPARATOR.join(conservative),
        standard=PARAGRAPH_SEPARATOR.join(standard),
        enhanced=PARAGRAPH_SEPARATOR.join(enhanced),
    )


def run_workflow(
    sample_text: str,
    draft_text: str,
    config: PaperMirrorConfig | None = None,
    rewriter: Rewriter | None = None,
    on_progress: ProgressCallback | None = None,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> MigrationResult:
    """Restyle the draft after the sample and return the output with its report."""
    config = config or PaperMirrorConfig()
    rewriter = rewriter or NoOpRewriter()
    if not normalize_text(draft_text):
        raise EmptyDocumentError("Draft document is empty.")

    logger.info(
        "Starting %s workflow (sample %s chars, draft %s chars)",
        config.rewrite_mode,
        len(sample_text),
        len(draft_text),
    )
    if config.rewrite_mode == "full_text":
        return run_full_text_workflow(
            sample_text, draft_text, config, rewriter, on_progress, sleep=sleep
        )
    return run_sentence_edits_workflow(
        sample_text,
        draft_text,
        config,
        rewriter,
        on_progress,
        clock=clock,
        sleep=sleep,
    )
