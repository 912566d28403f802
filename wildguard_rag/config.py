"""Unified configuration for the assistant."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


@dataclass
class KnowledgeConfig:
    """Knowledge source selection.

    Parameters
    ----------
    source : str
        Registered knowledge base name or a path to a JSON/YAML file.
    reuse_stored_embeddings : bool
        Reuse embeddings shipped with the source when their dimension matches
        the embedder, instead of recomputing them.
    """

    source: str = "wilderness"
    reuse_stored_embeddings: bool = False


@dataclass
class EmbedderConfig:
    """Text-embedding backend configuration.

    Parameters
    ----------
    backend : str
        Registered embedding backend name.
    model : str
        Model identifier passed to the backend.
    max_chars : int
        Input text is truncated to this many characters before embedding.
    device : str | None
        Compute device; ``None`` lets the backend choose.
    enabled : bool
        ``False`` forces keyword-only retrieval.
    """

    backend: str = "sentence_transformers"
    model: str = "all-MiniLM-L6-v2"
    max_chars: int = 600
    device: str | None = None
    enabled: bool = True

    def __post_init__(self) -> None:
        if self.max_chars <= 0:
            msg = f"max_chars must be > 0, got {self.max_chars}"
            raise ValueError(msg)


@dataclass
class RetrievalConfig:
    """Ranking knobs for the retriever.

    Parameters
    ----------
    top_k : int
        Number of chunks handed to the prompt.
    stopwords : list[str] | None
        Words ignored when matching titles and bodies. ``None`` uses the
        built-in set.
    prefer_title_matches : bool
        Restrict candidates to title matches whenever any chunk has one.
    """

    top_k: int = 1
    stopwords: list[str] | None = None
    prefer_title_matches: bool = True

    def __post_init__(self) -> None:
        if self.top_k < 1:
            msg = f"top_k must be >= 1, got {self.top_k}"
            raise ValueError(msg)


@dataclass
class PromptConfig:
    """Prompt assembly limits.

    Parameters
    ----------
    template : str
        Registered prompt template name.
    context_chars_per_chunk : int
        Each context passage is cut to this many characters.
    max_prompt_chars : int
        Hard ceiling on the final prompt length.
    """

    template: str = "wilderness_survival"
    context_chars_per_chunk: int = 400
    max_prompt_chars: int = 7000

    def __post_init__(self) -> None:
        if self.context_chars_per_chunk <= 0:
            msg = f"context_chars_per_chunk must be > 0, got {self.context_chars_per_chunk}"
            raise ValueError(msg)
        if self.max_prompt_chars <= 0:
            msg = f"max_prompt_chars must be > 0, got {self.max_prompt_chars}"
            raise ValueError(msg)


@dataclass
class EngineConfig:
    """Language-model engine configuration.

    Parameters
    ----------
    type : str
        Registered engine name (``"transformers"``, ``"openai"``, ``"litellm"``).
    model : str
        Model path or identifier understood by the engine.
    max_tokens : int
        Maximum tokens generated per response.
    max_top_k : int
        Upper bound for the per-session top-k.
    device : str
        Preferred compute backend (``"cpu"``, ``"cuda"``, ``"mps"``).
    extra : dict
        Additional kwargs forwarded to the engine constructor.
    """

    type: str = "transformers"
    model: str = "google/gemma-3-1b-it"
    max_tokens: int = 800
    max_top_k: int = 40
    device: str = "cpu"
    extra: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.model, str) or not self.model:
            msg = "model must be a non-empty string"
            raise ValueError(msg)
        if self.max_tokens <= 0:
            msg = f"max_tokens must be > 0, got {self.max_tokens}"
            raise ValueError(msg)
        if self.max_top_k < 1:
            msg = f"max_top_k must be >= 1, got {self.max_top_k}"
            raise ValueError(msg)


@dataclass(frozen=True)
class SamplingConfig:
    """Per-session sampling controls.

    Parameters
    ----------
    temperature : float
        Sampling temperature; lower is more deterministic.
    top_k : int
        Number of candidate tokens considered per step.
    top_p : float
        Nucleus sampling mass.
    """

    temperature: float = 0.2
    top_k: int = 20
    top_p: float = 0.8

    def __post_init__(self) -> None:
        if self.temperature < 0:
            msg = f"temperature must be >= 0, got {self.temperature}"
            raise ValueError(msg)
        if self.top_k < 1:
            msg = f"top_k must be >= 1, got {self.top_k}"
            raise ValueError(msg)
        if not 0 < self.top_p <= 1:
            msg = f"top_p must be in (0, 1], got {self.top_p}"
            raise ValueError(msg)


@dataclass
class AssistantConfig:
    """Top-level configuration for the assistant.

    Parameters
    ----------
    knowledge : KnowledgeConfig
    embedder : EmbedderConfig
    retrieval : RetrievalConfig
    prompt : PromptConfig
    engine : EngineConfig
    sampling : SamplingConfig
    assistant_name : str
        Name used in the greeting message.
    min_response_chars : int
        Responses shorter than this are replaced by a clarification request.
    """

    knowledge: KnowledgeConfig = field(default_factory=KnowledgeConfig)
    embedder: EmbedderConfig = field(default_factory=EmbedderConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    prompt: PromptConfig = field(default_factory=PromptConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    assistant_name: str = "WildGuard AI"
    min_response_chars: int = 10


def load_config(source: str | Path | dict[str, Any] | AssistantConfig | None = None) -> AssistantConfig:
    """Load an AssistantConfig from a YAML file, dict, or environment variables.

    Parameters
    ----------
    source : str | Path | dict | AssistantConfig | None
        A path to a YAML file, a raw dict, an existing config (returned
        unchanged), or ``None`` to use only environment variable overrides
        on defaults.

    Returns
    -------
    AssistantConfig

    Raises
    ------
    ValueError
        If a section contains an invalid value.
    """
    if isinstance(source, AssistantConfig):
        return source

    raw: dict[str, Any] = {}
    if isinstance(source, dict):
        raw = source
    elif source is not None:
        path = Path(source)
        if path.is_file():
            raw = _load_yaml(path)

    knowledge_raw = dict(raw.get("knowledge") or {})
    if "WILDGUARD_KNOWLEDGE_BASE" in os.environ:
        knowledge_raw["source"] = os.environ["WILDGUARD_KNOWLEDGE_BASE"]

    embedder_raw = dict(raw.get("embedder") or {})
    if "WILDGUARD_EMBEDDING_MODEL" in os.environ:
        embedder_raw["model"] = os.environ["WILDGUARD_EMBEDDING_MODEL"]

    retrieval_raw = dict(raw.get("retrieval") or {})
    if "WILDGUARD_TOP_K" in os.environ:
        retrieval_raw["top_k"] = int(os.environ["WILDGUARD_TOP_K"])

    engine_raw = dict(raw.get("engine") or {})
    engine = EngineConfig(
        type=os.environ.get("WILDGUARD_ENGINE", engine_raw.get("type", "transformers")),
        model=os.environ.get("WILDGUARD_MODEL_PATH", engine_raw.get("model", "google/gemma-3-1b-it")),
        max_tokens=int(engine_raw.get("max_tokens", 800)),
        max_top_k=int(engine_raw.get("max_top_k", 40)),
        device=engine_raw.get("device", "cpu"),
        extra={k: v for k, v in engine_raw.items() if k not in {"type", "model", "max_tokens", "max_top_k", "device"}},
    )

    return AssistantConfig(
        knowledge=KnowledgeConfig(**_known(KnowledgeConfig, knowledge_raw)),
        embedder=EmbedderConfig(**_known(EmbedderConfig, embedder_raw)),
        retrieval=RetrievalConfig(**_known(RetrievalConfig, retrieval_raw)),
        prompt=PromptConfig(**_known(PromptConfig, raw.get("prompt") or {})),
        engine=engine,
        sampling=SamplingConfig(**_known(SamplingConfig, raw.get("sampling") or {})),
        assistant_name=raw.get("assistant_name", "WildGuard AI"),
        min_response_chars=int(raw.get("min_response_chars", 10)),
    )


def _known(klass: type, data: dict[str, Any]) -> dict[str, Any]:
    """Drop keys that are not fields of *klass*."""
    return {k: v for k, v in data.items() if k in klass.__dataclass_fields__}


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file using PyYAML."""
    with open(path, encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}
