"""
Rule-based citation hints.

Flags draft sentences that read like claims needing a reference (background
statements, definitions, borrowed methods, comparisons, statistics) and
proposes search queries for them. No references are generated.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Tuple

from ..textutils import split_sentences

RULES_VERSION = "1.0.0"
MAX_ITEMS = 20
MAX_SENTENCE_CHARS = 100
MAX_QUERIES = 4

CITATION_PATTERNS: Dict[str, Tuple[str, ...]] = {
    "background": (
        "近年来",
        "广泛关注",
        "已被广泛应用",
        "已有研究表明",
        "文献报道",
        "研究发现",
        "前人研究",
        "现有研究",
        "大量研究",
        "学者们",
        "随着.*的发展",
        "日益增长",
        "已成为",
        "普遍认为",
        "通常认为",
        r"\bin recent years\b",
        r"\bprevious (?:studies|work)\b",
        r"\bhas been widely\b",
    ),
    "definition": (
        "定义为",
        "被定义为",
        "根据.*标准",
        "按照.*定义",
        "指标.*定义",
        "协议",
        "规范",
        "标准规定",
        "国际标准",
        "国家标准",
        "行业标准",
        r"\bis defined as\b",
    ),
    "method": (
        "采用.*方法",
        "基于.*模型",
        "使用.*算法",
        "运用.*技术",
        "借鉴.*框架",
        "参考.*设计",
        "引入.*机制",
        "提出的.*方法",
        "经典.*算法",
        "传统.*方法",
    ),
    "comparison": (
        "传统方法.*存在",
        "现有方法.*不足",
        "相比之下",
        "优于",
        "劣于",
        "对比",
        "比较",
        "相较于",
        "与.*相比",
        "超过了",
        "不如",
        r"\bcompared (?:with|to)\b",
        r"\boutperforms?\b",
    ),
    "statistic": (
        "占.*比例",
        "增长了",
        "下降了",
        "大规模",
        "调查显示",
        "统计表明",
        "数据显示",
        "据统计",
        r"\d+%.*的",
        r"约\d+",
        r"超过\d+",
        r"达到\d+",
    ),
}

OWN_WORK_PATTERNS: Tuple[str, ...] = (
    "本文提出",
    "本研究",
    "我们提出",
    "我们发现",
    "本工作",
    "本实验",
    "本文设计",
    "本文实现",
    "我们的方法",
    "我们的模型",
    r"\b(?:we|this paper|this study) propose",
    r"\bour (?:method|model|approach)\b",
)

QUERY_SUFFIXES: Dict[str, Tuple[Tuple[str, ...], Tuple[str, ...]]] = {
    "background": (("综述", "研究进展", "发展现状"), ("survey", "review", "overview")),
    "definition": (("定义", "标准", "规范"), ("definition", "standard", "specification")),
    "method": (("方法", "算法", "技术"), ("method", "algorithm", "technique")),
    "comparison": (("对比", "比较研究", "评估"), ("comparison", "benchmark", "evaluation")),
    "statistic": (("统计", "调查", "数据分析"), ("statistics", "survey data", "analysis")),
}

STOPWORDS = frozenset(
    "the and for with from this that these those are was were been have has had".split()
)

_OWN_WORK_RES = tuple(re.compile(p, re.IGNORECASE) for p in OWN_WORK_PATTERNS)
_CITATION_RES = {
    reason: tuple(re.compile(p, re.IGNORECASE) for p in patterns)
    for reason, patterns in CITATION_PATTERNS.items()
}
_QUOTED_RE = re.compile(r"[“\"]([^“”\"]+)[”\"]")
_ENGLISH_TERM_RE = re.compile(r"[A-Za-z][A-Za-z0-9-]+(?:\s+[A-Za-z][A-Za-z0-9-]+)*")
_CHINESE_TERM_RE = re.compile(
    r"[一-龥]{2,6}(?:技术|方法|算法|模型|系统|网络|框架|机制|理论|分析)"
)
_SENTENCE_PUNCT_RE = re.compile(r"[，。？！]")


@dataclass(slots=True)
class CitationSuggestion:
    sentence_index: int
    sentence_text: str
    reason: str
    queries: List[str]


@dataclass(slots=True)
class CitationSuggestions:
    rules_version: str = RULES_VERSION
    items: List[CitationSuggestion] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def is_own_work(sentence: str) -> bool:
    return any(regex.search(sentence) for regex in _OWN_WORK_RES)


def citation_reason(sentence: str) -> str | None:
    """Return the first matching citation category, or None."""
    if is_own_work(sentence):
        return None
    for reason, patterns in _CITATION_RES.items():
        if any(regex.search(sentence) for regex in patterns):
            return reason
    return None


def extract_key_terms(sentence: str) -> List[str]:
    terms: List[str] = list(_QUOTED_RE.findall(sentence))
    for match in _ENGLISH_TERM_RE.findall(sentence):
        if len(match) >= 3 and match.lower() not in STOPWORDS:
            terms.append(match)
    terms.extend(_CHINESE_TERM_RE.findall(sentence))
    return list(dict.fromkeys(terms))[:MAX_QUERIES]


def generate_queries(sentence: str, reason: str) -> List[str]:
    terms = extract_key_terms(sentence)
    chinese_suffixes, english_suffixes = QUERY_SUFFIXES[reason]
    queries = [f"{term} {chinese_suffixes[0]}" for term in terms[:2]]
    english_terms = [term for term in terms if re.search(r"[A-Za-z]", term)]
    queries.extend(f"{term} {english_suffixes[0]}" for term in english_terms[:2])
    if not queries:
        fallback = _SENTENCE_PUNCT_RE.sub("", sentence[:20])
        queries.append(f"{fallback} {chinese_suffixes[0]}")
    return queries[:MAX_QUERIES]


def _clip(text: str) -> str:
    if len(text) <= MAX_SENTENCE_CHARS:
        return text
    return text[:MAX_SENTENCE_CHARS] + "..."


def generate_citation_suggestions(draft: str) -> CitationSuggestions:
    items: List[CitationSuggestion] = []
    for sentence in split_sentences(draft):
        reason = citation_reason(sentence.text)
        if reason is None:
            continue
        items.append(
            CitationSuggestion(
                sentence_index=sentence.index,
                sentence_text=_clip(sentence.text),
                reason=reason,
                queries=generate_queries(sentence.text, reason),
            )
        )
        if len(items) >= MAX_ITEMS:
            break
    return CitationSuggestions(rules_version=RULES_VERSION, items=items)
