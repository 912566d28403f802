"""OpenAI-compatible local inference server engine."""

from __future__ import annotations

import logging
from typing import Any

from wildguard_rag.config import SamplingConfig
from wildguard_rag.engines.base import Engine, EngineRegistry, Session

logger = logging.getLogger(__name__)

try:
    import openai

    _HAS_OPENAI = True
except ImportError:  # pragma: no cover
    _HAS_OPENAI = False


@EngineRegistry.register("openai")
class OpenAICompatibleEngine(Engine):
    """Engine backed by a local server speaking the OpenAI Chat Completions API.

    Works with llama.cpp's server, vLLM, LM Studio and similar runtimes.

    Parameters
    ----------
    model : str
        Model name as exposed by the server.
    base_url : str
        Server URL including the ``/v1`` prefix.
    api_key : str
        Key sent to the server; local servers usually ignore it.
    max_tokens : int
        Maximum tokens per completion.
    max_top_k : int
        Upper bound for per-session top-k.
    device : str
        Unused; the server owns device placement.
    """

    name = "openai"

    def __init__(
        self,
        model: str,
        *,
        base_url: str = "http://localhost:8080/v1",
        api_key: str = "not-needed",
        max_tokens: int = 800,
        max_top_k: int = 40,
        device: str = "cpu",
    ) -> None:
        if not _HAS_OPENAI:
            msg = "The 'openai' package is required: pip install openai"
            raise ImportError(msg)
        super().__init__(model, max_tokens=max_tokens, max_top_k=max_top_k, device=device)
        self.client = openai.OpenAI(base_url=base_url, api_key=api_key)

    def create_session(self, sampling: SamplingConfig) -> OpenAICompatibleSession:
        return OpenAICompatibleSession(self, sampling)

    def close(self) -> None:
        self.client.close()


class OpenAICompatibleSession(Session):
    """Session that sends each prompt as a single user message."""

    def __init__(self, engine: OpenAICompatibleEngine, sampling: SamplingConfig) -> None:
        super().__init__(sampling)
        self._engine = engine

    def generate(self, prompt: str) -> str:
        self._ensure_open()
        kwargs: dict[str, Any] = {
            "model": self._engine.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.sampling.temperature,
            "top_p": self.sampling.top_p,
            "max_tokens": self._engine.max_tokens,
            "extra_body": {"top_k": self._engine.clamp_top_k(self.sampling.top_k)},
        }
        logger.debug("OpenAI-compatible request model=%s chars=%d", kwargs["model"], len(prompt))
        response = self._engine.client.chat.completions.create(**kwargs)
        return response.choices[0].message.content or ""
