"""
papermirror package exports convenience helpers for library consumers.
"""

from __future__ import annotations

from .config import PaperMirrorConfig, config_from_dict, config_from_yaml, load_config
from .pipeline import run_full_text_workflow, run_sentence_edits_workflow, run_workflow
from .reconstruction import rebuild_text, validate_replacements
from .rewriting import CallableRewriter, NoOpRewriter, OpenAIRewriter, Rewriter
from .tokenization import tokenize_document

__all__ = [
    "PaperMirrorConfig",
    "config_from_dict",
    "config_from_yaml",
    "load_config",
    "run_workflow",
    "run_sentence_edits_workflow",
    "run_full_text_workflow",
    "tokenize_document",
    "rebuild_text",
    "validate_replacements",
    "Rewriter",
    "NoOpRewriter",
    "CallableRewriter",
    "OpenAIRewriter",
]

__version__ = "0.1.0"
