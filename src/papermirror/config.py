from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Tuple, Type, TypeVar

import yaml

REWRITE_MODES = ("sentence_edits", "full_text")
ANALYSIS_MODES = ("none", "fidelity_only", "full")


@dataclass(slots=True)
class OpenAISettings:
    """Configuration block for OpenAI-powered rewriting."""

    enabled: bool = False
    model: str = "gpt-4.1-mini"
    api_key: str | None = None
    api_key_env: str = "OPENAI_API_KEY"
    base_url: str | None = None
    organization: str | None = None
    temperature: float = 0.2
    max_output_tokens: int = 4096
    top_p: float = 0.95
    request_timeout: float = 120.0
    max_attempts: int = 1
    json_mode: bool = True
    parallel_requests: int = 1


@dataclass(frozen=True, slots=True)
class BatchingSettings:
    """Knobs for the adaptive sentence batch scheduler."""

    initial_batch_size: int = 20
    max_batch_size: int = 25
    degradation_chain: Tuple[int, ...] = (20, 10, 5, 1)
    fast_call_seconds: float = 15.0
    slow_call_seconds: float = 40.0
    fast_calls_to_upgrade: int = 3
    max_retries_per_batch: int = 2
    inter_batch_delay: float = 0.2
    inter_chunk_delay: float = 0.3

    def __post_init__(self) -> None:
        chain = tuple(int(size) for size in self.degradation_chain)
        object.__setattr__(self, "degradation_chain", chain)
        if not chain:
            raise ValueError("degradation_chain must not be empty.")
        if any(later >= earlier for earlier, later in zip(chain, chain[1:])):
            raise ValueError("degradation_chain must be strictly decreasing.")
        if chain[-1] != 1:
            raise ValueError("degradation_chain must end with a batch size of 1.")
        if self.initial_batch_size < 1:
            raise ValueError("initial_batch_size must be positive.")
        if self.max_batch_size < self.initial_batch_size:
            raise ValueError("max_batch_size must be >= initial_batch_size.")
        if self.max_retries_per_batch < 0:
            raise ValueError("max_retries_per_batch must be >= 0.")
        if self.fast_call_seconds > self.slow_call_seconds:
            raise ValueError("fast_call_seconds must not exceed slow_call_seconds.")


@dataclass(frozen=True, slots=True)
class TokenizerSettings:
    """Thresholds for sentence tokenization."""

    max_sentence_chars: int = 400
    force_split_chunk_size: int = 280
    force_split_lookback: int = 50
    min_sentence_chars: int = 2

    def __post_init__(self) -> None:
        if self.force_split_chunk_size < 1:
            raise ValueError("force_split_chunk_size must be positive.")
        if self.max_sentence_chars < 1:
            raise ValueError("max_sentence_chars must be positive.")


@dataclass(frozen=True, slots=True)
class ChunkingSettings:
    """Thresholds for document segmentation and neighbour context."""

    paragraphs_per_chunk: int = 6
    min_chunk_chars: int = 400
    max_chunk_chars: int = 2000
    context_lines: int = 3
    global_context_chars: int = 200

    def __post_init__(self) -> None:
        if self.paragraphs_per_chunk < 1:
            raise ValueError("paragraphs_per_chunk must be positive.")
        if self.max_chunk_chars < 1:
            raise ValueError("max_chunk_chars must be positive.")
        if self.context_lines < 0:
            raise ValueError("context_lines must be >= 0.")


@dataclass(frozen=True, slots=True)
class FidelitySettings:
    """Tuning for the local fidelity guardrails."""

    max_alerts: int = 10
    min_acronym_length: int = 2


@dataclass(slots=True)
class PaperMirrorConfig:
    """Configuration options for the style-transfer workflow."""

    rewrite_mode: str = "sentence_edits"
    analysis_mode: str = "full"
    fallback_on_context_failure: bool = True
    batching: BatchingSettings = field(default_factory=BatchingSettings)
    tokenizer: TokenizerSettings = field(default_factory=TokenizerSettings)
    chunking: ChunkingSettings = field(default_factory=ChunkingSettings)
    fidelity: FidelitySettings = field(default_factory=FidelitySettings)
    openai: OpenAISettings = field(default_factory=OpenAISettings)

    def __post_init__(self) -> None:
        if self.rewrite_mode not in REWRITE_MODES:
            raise ValueError(
                f"Unknown rewrite_mode '{self.rewrite_mode}'; expected one of {REWRITE_MODES}."
            )
        if self.analysis_mode not in ANALYSIS_MODES:
            raise ValueError(
                f"Unknown analysis_mode '{self.analysis_mode}'; expected one of {ANALYSIS_MODES}."
            )

    def to_dict(self) -> dict[str, Any]:
        """Return a mutable dictionary representation of the configuration."""
        data = dict(asdict(self))
        data["batching"]["degradation_chain"] = list(
            self.batching.degradation_chain
        )
        return data


_SettingsT = TypeVar("_SettingsT")

_NESTED_SETTINGS: dict[str, type] = {
    "batching": BatchingSettings,
    "tokenizer": TokenizerSettings,
    "chunking": ChunkingSettings,
    "fidelity": FidelitySettings,
    "openai": OpenAISettings,
}


def _build_settings(cls: Type[_SettingsT], data: Mapping[str, Any]) -> _SettingsT:
    allowed = {item.name for item in fields(cls)}  # type: ignore[arg-type]
    filtered = {key: data[key] for key in data if key in allowed}
    if "degradation_chain" in filtered:
        filtered["degradation_chain"] = tuple(filtered["degradation_chain"])
    return cls(**filtered)


def _build_kwargs(data: Mapping[str, Any]) -> dict[str, Any]:
    allowed = {item.name for item in fields(PaperMirrorConfig)}
    kwargs = {key: data[key] for key in data if key in allowed}
    for name, settings_cls in _NESTED_SETTINGS.items():
        if name not in data:
            continue
        value = data[name]
        if isinstance(value, settings_cls):
            kwargs[name] = value
        elif isinstance(value, Mapping):
            kwargs[name] = _build_settings(settings_cls, value)
        else:
            raise ValueError(f"Configuration section '{name}' must be a mapping.")
    return kwargs


def config_from_dict(data: Mapping[str, Any] | None) -> PaperMirrorConfig:
    """Build a PaperMirrorConfig from a dictionary-like input."""
    if data is None:
        return PaperMirrorConfig()
    return PaperMirrorConfig(**_build_kwargs(data))


def config_from_yaml(path: str | Path) -> PaperMirrorConfig:
    """Load configuration from a YAML file."""
    contents = Path(path).read_text(encoding="utf-8")
    parsed = yaml.safe_load(contents) or {}
    if not isinstance(parsed, MutableMapping):
        raise ValueError("Configuration YAML must define a mapping.")
    return config_from_dict(parsed)


def load_config(path: str | Path | None = None) -> PaperMirrorConfig:
    """Load configuration from YAML when provided, otherwise return defaults."""
    if path is None:
        return PaperMirrorConfig()
    return config_from_yaml(path)
