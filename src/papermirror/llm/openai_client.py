from __future__ import annotations

import importlib
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, cast

from ..config import OpenAISettings
from ..errors import ServiceTransportError

logger = logging.getLogger(__name__)

OpenAI: Callable[..., Any] | None = None


@dataclass(slots=True)
class RequestMetadata:
    """Describes the request being sent, used for logging."""

    task: str
    chunk_index: int | None = None
    batch_number: int | None = None
    sentence_count: int | None = None
    char_count: int | None = None


class OpenAIRewriteClient:
    """Thin wrapper around the OpenAI Responses API with retries and throttling."""

    def __init__(self, settings: OpenAISettings, api_key: str) -> None:
        if not api_key:
            raise ValueError("OpenAI API key is required when rewriting is enabled.")
        self._settings = settings
        self._api_key = api_key
        self._client_factory: Callable[..., Any] = _load_openai_factory()
        self._client: Any | None = None
        self._semaphore: threading.BoundedSemaphore | None = None
        if settings.parallel_requests > 0:
            self._semaphore = threading.BoundedSemaphore(settings.parallel_requests)
        self._max_attempts = max(1, settings.max_attempts)

    @property
    def settings(self) -> OpenAISettings:
        return self._settings

    def generate(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        metadata: RequestMetadata,
    ) -> str:
        """Send the request and return the raw model output text."""
        attempt = 0
        last_error: Exception | None = None
        while attempt < self._max_attempts:
            attempt += 1
            started = time.monotonic()
            try:
                with self._acquire_slot():
                    client = self._ensure_client()
                    request: dict[str, Any] = {
                        "model": self._settings.model,
                        "input": [
                            {"role": "system", "content": system_prompt},
                            {"role": "user", "content": user_prompt},
                        ],
                        "temperature": self._settings.temperature,
                        "max_output_tokens": self._settings.max_output_tokens,
                        "top_p": self._settings.top_p,
                        "timeout": self._settings.request_timeout,
                    }
                    if self._settings.json_mode:
                        request["text"] = {"format": {"type": "json_object"}}
                    response: Any = client.responses.create(**request)
                text = response_text(response)
                logger.debug(
                    "OpenAI %s took %.1fs (chunk=%s batch=%s sentences=%s chars=%s)",
                    metadata.task,
                    time.monotonic() - started,
                    metadata.chunk_index,
                    metadata.batch_number,
                    metadata.sentence_count,
                    metadata.char_count,
                )
                return text
            except Exception as exc:
                last_error = exc
                logger.warning(
                    "OpenAI %s failed for chunk=%s batch=%s (attempt %s/%s): %s",
                    metadata.task,
                    metadata.chunk_index,
                    metadata.batch_number,
                    attempt,
                    self._max_attempts,
                    exc,
                )
                if attempt >= self._max_attempts:
                    break
                time.sleep(min(2 ** (attempt - 1), 5))
        raise ServiceTransportError(
            f"OpenAI {metadata.task} request failed after {attempt} attempt(s)."
        ) from last_error

    def _ensure_client(self) -> Any:
        if self._client is None:
            self._client = self._client_factory(
                api_key=self._api_key,
                base_url=self._settings.base_url,
                organization=self._settings.organization,
            )
        return self._client

    @contextmanager
    def _acquire_slot(self) -> Iterator[None]:
        if self._semaphore is None:
            yield
            return
        self._semaphore.acquire()
        try:
            yield
        finally:
            self._semaphore.release()


def response_text(response: Any) -> str:
    """Pull the first non-empty text segment out of a Responses API result."""
    output_text = getattr(response, "output_text", None)
    if isinstance(output_text, str) and output_text:
        return output_text
    for item in _as_mapping(response).get("output") or ():
        for segment in _as_mapping(item).get("content") or ():
            text = _as_mapping(segment).get("text")
            if isinstance(text, str) and text:
                return text
    raise ServiceTransportError("OpenAI response contained no text output.")


def _as_mapping(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return cast(dict[str, Any], value)
    dump = getattr(value, "model_dump", None)
    if callable(dump):
        return cast(dict[str, Any], dump())
    if hasattr(value, "__dict__"):
        return dict(vars(value))
    return {}


def _load_openai_factory() -> Callable[..., Any]:
    """Resolve the SDK client class on first use; the SDK is an optional extra."""
    global OpenAI
    if OpenAI is None:
        try:
            module = importlib.import_module("openai")
        except ImportError as exc:
            raise RuntimeError(
                "The openai package is required for LLM rewriting. "
                "Install it with 'pip install papermirror[llm-openai]'."
            ) from exc
        OpenAI = cast(Callable[..., Any], module.OpenAI)
    return OpenAI
