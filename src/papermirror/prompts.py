from __future__ import annotations

import json
from typing import Any, Sequence

from .models import DocumentContext, SentenceToken, StyleGuide

JSON_ONLY_RULES = (
    "STRICT REQUIREMENTS:\n"
    "- Output must be a single valid JSON object.\n"
    "- No markdown, no comments, no text outside the JSON."
)

STYLE_GUIDE_SYSTEM_PROMPT = (
    "You are an academic editor specialised in quantitative style analysis. "
    "Your only job is to analyse the given academic text and describe its style "
    "as one well-formed JSON object.\n" + JSON_ONLY_RULES
)

STYLE_GUIDE_EXAMPLE: dict[str, Any] = {
    "averageSentenceLength": 22.5,
    "lexicalComplexity": 0.78,
    "passiveVoicePercentage": 15.2,
    "commonTransitions": ["Furthermore,", "In contrast,", "Therefore,"],
    "tone": "Formal and objective",
    "structure": (
        "Starts with broad context, narrows to the hypothesis, presents results "
        "and closes with wider implications."
    ),
}

STYLE_GUIDE_PROMPT_TEMPLATE = (
    "<DOCUMENT_CONTENT>\n"
    "{sample}\n"
    "</DOCUMENT_CONTENT>\n"
    "\n"
    "Extract the key style features of the document above.\n"
    "- All metrics must be numbers, not strings.\n"
    "- 'tone' uses two or three words.\n"
    "- 'structure' is a single descriptive sentence.\n"
    "- Do not add keys that are absent from the example.\n"
    "\n"
    "Answer with JSON shaped exactly like this example:\n"
    "{example}"
)

DOCUMENT_CONTEXT_SYSTEM_PROMPT = (
    "You are a document analysis assistant. Read the whole document and "
    "produce a structured JSON summary of its sections plus an overall summary.\n"
    + JSON_ONLY_RULES
)

DOCUMENT_CONTEXT_PROMPT_TEMPLATE = (
    "<FULL_DOCUMENT>\n"
    "{draft}\n"
    "</FULL_DOCUMENT>\n"
    "\n"
    "Summarise the whole document and each major section identified by a heading.\n"
    "- Take section titles verbatim from the headings where possible.\n"
    "- Keep every summary to one or two sentences.\n"
    "- If there are no clear sections, return one entry titled \"Full Document\".\n"
    "\n"
    'Answer with JSON: {{"documentSummary": str, '
    '"sectionSummaries": [{{"sectionTitle": str, "summary": str}}]}}'
)

SENTENCE_EDITS_SYSTEM_PROMPT = (
    "You are a precise academic writing assistant. You restyle individual "
    "sentences so that they match a target style guide while keeping every fact, "
    "number, acronym and citation intact. Write in the language of the input "
    "sentences; never translate.\n" + JSON_ONLY_RULES
)

SENTENCE_EDITS_PROMPT_TEMPLATE = (
    "<STYLE_GUIDE>\n"
    "{style_guide}\n"
    "</STYLE_GUIDE>\n"
    "\n"
    "<GLOBAL_CONTEXT>\n"
    "{global_context}\n"
    "</GLOBAL_CONTEXT>\n"
    "\n"
    "<CONTEXT_BEFORE>\n"
    "{context_before}\n"
    "</CONTEXT_BEFORE>\n"
    "\n"
    "<SENTENCES>\n"
    "{sentences}\n"
    "</SENTENCES>\n"
    "\n"
    "<CONTEXT_AFTER>\n"
    "{context_after}\n"
    "</CONTEXT_AFTER>\n"
    "\n"
    "Rewrite the sentences listed in <SENTENCES> to follow <STYLE_GUIDE>.\n"
    "- Only return sentences you actually changed; omit unchanged ones.\n"
    "- Use exactly the index values given; never invent new indices.\n"
    "- Each replacement is one sentence; never insert blank lines.\n"
    "- Do not change facts, data, numbers, acronyms or references.\n"
    "\n"
    'Answer with JSON: {{"replacements": [{{"index": int, "text": str}}]}}'
)

CHUNK_REWRITE_SYSTEM_PROMPT = (
    "You are a precise academic writing assistant. You transfer the style of one "
    "section of a document according to a strict style guide and the global "
    "context of the document.\n" + JSON_ONLY_RULES
)

CHUNK_REWRITE_PROMPT_TEMPLATE = (
    "<STYLE_GUIDE>\n"
    "{style_guide}\n"
    "</STYLE_GUIDE>\n"
    "\n"
    "<GLOBAL_CONTEXT>\n"
    "Document Summary: {document_summary}\n"
    "Current Section ({section_title}): {section_summary}\n"
    "</GLOBAL_CONTEXT>\n"
    "\n"
    "<CONTEXT_BEFORE>\n"
    "{context_before}\n"
    "</CONTEXT_BEFORE>\n"
    "\n"
    "<TARGET_SECTION>\n"
    "{content}\n"
    "</TARGET_SECTION>\n"
    "\n"
    "<CONTEXT_AFTER>\n"
    "{context_after}\n"
    "</CONTEXT_AFTER>\n"
    "\n"
    "Rewrite only <TARGET_SECTION> so that it follows <STYLE_GUIDE>. Never change "
    "facts, data or citations. Keep Markdown headings and paragraph breaks.\n"
    "Produce three versions:\n"
    "- conservative: minimal edits, fix only obvious tone mismatches.\n"
    "- standard: balanced application of the style guide.\n"
    "- enhanced: aggressive restructuring to closely match the target style.\n"
    "\n"
    'Answer with JSON: {{"conservative": str, "standard": str, "enhanced": str}}'
)


def _style_guide_json(style_guide: StyleGuide) -> str:
    payload = {
        "averageSentenceLength": style_guide.average_sentence_length,
        "lexicalComplexity": style_guide.lexical_complexity,
        "passiveVoicePercentage": style_guide.passive_voice_percentage,
        "commonTransitions": list(style_guide.common_transitions),
        "tone": style_guide.tone,
        "structure": style_guide.structure,
    }
    return json.dumps(payload, ensure_ascii=False, indent=2)


def build_style_guide_prompt(sample: str) -> str:
    return STYLE_GUIDE_PROMPT_TEMPLATE.format(
        sample=sample.strip(),
        example=json.dumps(STYLE_GUIDE_EXAMPLE, ensure_ascii=False, indent=2),
    )


def build_document_context_prompt(draft: str) -> str:
    return DOCUMENT_CONTEXT_PROMPT_TEMPLATE.format(draft=draft.strip())


def build_sentence_edits_prompt(
    sentences: Sequence[SentenceToken],
    style_guide: StyleGuide,
    global_context: str,
    context_before: str,
    context_after: str,
) -> str:
    listed = json.dumps(
        [{"index": s.index, "text": s.text} for s in sentences],
        ensure_ascii=False,
        indent=2,
    )
    return SENTENCE_EDITS_PROMPT_TEMPLATE.format(
        style_guide=_style_guide_json(style_guide),
        global_context=global_context or "N/A",
        context_before=context_before or "N/A",
        sentences=listed,
        context_after=context_after or "N/A",
    )


def build_chunk_rewrite_prompt(
    content: str,
    style_guide: StyleGuide,
    document_context: DocumentContext,
    section_title: str | None,
    context_before: str,
    context_after: str,
) -> str:
    return CHUNK_REWRITE_PROMPT_TEMPLATE.format(
        style_guide=_style_guide_json(style_guide),
        document_summary=document_context.document_summary or "N/A",
        section_title=section_title or "General",
        section_summary=document_context.summary_for(section_title) or "N/A",
        context_before=context_before or "N/A",
        content=content.strip(),
        context_after=context_after or "N/A",
    )
