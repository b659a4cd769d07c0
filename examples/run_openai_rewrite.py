"""Minimal example showing how to run the OpenAI-backed workflow directly."""

from __future__ import annotations

import json
import os

from papermirror.config import load_config
from papermirror.llm import OpenAIRewriteClient
from papermirror.pipeline import run_workflow
from papermirror.rewriting import OpenAIRewriter


def main() -> None:
    config = load_config()
    config.openai.enabled = True
    api_key = (
        config.openai.api_key
        or os.environ.get(config.openai.api_key_env or "OPENAI_API_KEY")
        or ""
    )
    if not api_key:
        raise RuntimeError(
            "Set the OpenAI API key before running this example "
            f"({config.openai.api_key_env})."
        )

    client = OpenAIRewriteClient(config.openai, api_key=api_key)
    rewriter = OpenAIRewriter(client)

    sample_text = (
        "近年来，大规模语言模型在学术写作辅助中受到广泛关注。"
        "然而，现有方法往往忽视了学科写作风格的差异。"
        "因此，本文从句长、连接词与标点密度三个维度刻画风格。"
    )
    draft_text = (
        "# Introduction\n\n"
        "We made the scheduler faster. It now handles 35.7% more batches than before. "
        "The BERT baseline was also tested."
    )
    result = run_workflow(
        sample_text,
        draft_text,
        config,
        rewriter,
        on_progress=lambda update: print(update.stage),
    )
    print("Draft:\n", draft_text)
    print("\nRewritten:\n", result.standard)
    if result.analysis_report is not None:
        print(json.dumps(result.analysis_report.to_dict(), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
