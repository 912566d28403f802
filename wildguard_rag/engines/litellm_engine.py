"""LiteLLM engine for local model runtimes such as Ollama."""

from __future__ import annotations

import logging
from typing import Any

from wildguard_rag.config import SamplingConfig
from wildguard_rag.engines.base import Engine, EngineRegistry, Session

logger = logging.getLogger(__name__)

try:
    import litellm

    _HAS_LITELLM = True
except ImportError:  # pragma: no cover
    _HAS_LITELLM = False


@EngineRegistry.register("litellm")
class LiteLLMEngine(Engine):
    """Engine powered by LiteLLM's unified completion interface.

    Parameters
    ----------
    model : str
        Model identifier in LiteLLM format (e.g. ``"ollama/gemma3:1b"``).
    api_base : str | None
        Runtime URL, e.g. ``"http://localhost:11434"`` for Ollama.
    max_tokens : int
        Maximum tokens per completion.
    max_top_k : int
        Upper bound for per-session top-k.
    device : str
        Unused; the runtime owns device placement.
    """

    name = "litellm"

    def __init__(
        self,
        model: str,
        *,
        api_base: str | None = None,
        max_tokens: int = 800,
        max_top_k: int = 40,
        device: str = "cpu",
    ) -> None:
        if not _HAS_LITELLM:
            msg = "The 'litellm' package is required: pip install litellm"
            raise ImportError(msg)
        super().__init__(model, max_tokens=max_tokens, max_top_k=max_top_k, device=device)
        self.api_base = api_base

    def create_session(self, sampling: SamplingConfig) -> LiteLLMSession:
        return LiteLLMSession(self, sampling)


class LiteLLMSession(Session):
    """Session that sends each prompt as a single user message."""

    def __init__(self, engine: LiteLLMEngine, sampling: SamplingConfig) -> None:
        super().__init__(sampling)
        self._engine = engine

    def generate(self, prompt: str) -> str:
        self._ensure_open()
        kwargs: dict[str, Any] = {
            "model": self._engine.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.sampling.temperature,
            "top_p": self.sampling.top_p,
            "top_k": self._engine.clamp_top_k(self.sampling.top_k),
            "max_tokens": self._engine.max_tokens,
        }
        if self._engine.api_base:
            kwargs["api_base"] = self._engine.api_base

        logger.debug("LiteLLM request model=%s chars=%d", kwargs["model"], len(prompt))
        response = litellm.completion(**kwargs)
        return response.choices[0].message.content or ""
