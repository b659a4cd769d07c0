from __future__ import annotations

from .openai_client import OpenAIRewriteClient, RequestMetadata
from .payloads import extract_json_object, parse_json_object

__all__ = [
    "OpenAIRewriteClient",
    "RequestMetadata",
    "extract_json_object",
    "parse_json_object",
]
