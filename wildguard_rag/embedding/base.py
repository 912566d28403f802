"""Embedding backend protocol, registry, and the Embedder wrapper."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

import numpy as np

from wildguard_rag.config import EmbedderConfig
from wildguard_rag.errors import EmbedderUnavailable
from wildguard_rag.models import KnowledgeChunk

logger = logging.getLogger(__name__)


class EmbeddingBackend(ABC):
    """Text-embedding model that turns a string into a vector.

    Subclasses must set ``name`` and implement ``encode``. Backends whose
    output is already unit-length set ``normalizes = True``.
    """

    name: str = ""
    normalizes: bool = False

    @abstractmethod
    def encode(self, text: str) -> np.ndarray:
        """Return the raw embedding of *text* as a 1-D array."""


class EmbeddingBackendRegistry:
    """Discover and instantiate registered embedding backends."""

    _backends: dict[str, type[EmbeddingBackend]] = {}

    @classmethod
    def register(cls, name: str):
        """Class decorator that registers a backend under *name*.

        Parameters
        ----------
        name : str
            Lookup key used in configuration files.

        Returns
        -------
        Callable
            The original class, unmodified.
        """

        def decorator(klass: type[EmbeddingBackend]) -> type[EmbeddingBackend]:
            cls._backends[name] = klass
            return klass

        return decorator

    @classmethod
    def create(cls, name: str, **kwargs: Any) -> EmbeddingBackend:
        """Instantiate a registered backend.

        Raises
        ------
        KeyError
            If *name* is not registered.
        """
        if name not in cls._backends:
            available = ", ".join(sorted(cls._backends)) or "(none)"
            msg = f"Unknown embedding backend {name!r}. Available: {available}"
            raise KeyError(msg)
        return cls._backends[name](**kwargs)

    @classmethod
    def available(cls) -> list[str]:
        """Return sorted list of registered backend names."""
        return sorted(cls._backends)


class Embedder:
    """Bounded-input, L2-normalized text embedding.

    Input is cut to ``max_chars`` before encoding. Output is normalized so
    cosine similarity between two embeddings is their dot product; backends
    declaring ``normalizes = True`` are trusted and passed through.

    Parameters
    ----------
    backend : EmbeddingBackend | None
        Initialized backend, or ``None`` when initialization failed.
    max_chars : int
        Maximum number of input characters.
    """

    def __init__(self, backend: EmbeddingBackend | None, *, max_chars: int = 600) -> None:
        self._backend = backend
        self._max_chars = max_chars

    @classmethod
    def from_config(cls, config: EmbedderConfig) -> Embedder:
        """Create an embedder, degrading to an unavailable one on failure.

        Parameters
        ----------
        config : EmbedderConfig

        Returns
        -------
        Embedder
        """
        if not config.enabled:
            logger.info("Embedder disabled by configuration; using keyword-only retrieval")
            return cls(None, max_chars=config.max_chars)
        try:
            backend = EmbeddingBackendRegistry.create(config.backend, model=config.model, device=config.device)
        except Exception:
            logger.exception("Failed to init embedding backend %r. Will fall back to keyword search.", config.backend)
            return cls(None, max_chars=config.max_chars)
        logger.info("Embedder initialized backend=%s model=%s", config.backend, config.model)
        return cls(backend, max_chars=config.max_chars)

    @property
    def available(self) -> bool:
        return self._backend is not None

    @property
    def max_chars(self) -> int:
        return self._max_chars

    def embed(self, text: str) -> np.ndarray:
        """Embed a single string.

        Parameters
        ----------
        text : str
            Input text; truncated to ``max_chars``.

        Returns
        -------
        np.ndarray
            1-D float32 vector. A zero vector is returned as-is.

        Raises
        ------
        EmbedderUnavailable
            If the backend failed to initialize.
        """
        if self._backend is None:
            msg = "Text embedder is not initialized"
            raise EmbedderUnavailable(msg)
        vector = np.asarray(self._backend.encode(text[: self._max_chars]), dtype=np.float32).ravel()
        if self._backend.normalizes:
            return vector
        return l2_normalize(vector)

    def embed_chunks(self, chunks: Iterable[KnowledgeChunk], *, reuse_stored: bool = False) -> list[np.ndarray]:
        """Compute one embedding per chunk, in order.

        Chunks with empty context text receive an empty array, which the
        retriever never matches.

        Parameters
        ----------
        chunks : Iterable[KnowledgeChunk]
            Chunks in store order.
        reuse_stored : bool
            Reuse a chunk's stored embedding when it has the embedder's
            dimension.

        Returns
        -------
        list[np.ndarray]
            Embeddings parallel to *chunks*.

        Raises
        ------
        EmbedderUnavailable
            If the backend failed to initialize.
        """
        embeddings: list[np.ndarray] = []
        dimension: int | None = None
        for chunk in chunks:
            text = chunk.context_text()[: self._max_chars]
            if not text.strip():
                embeddings.append(np.zeros(0, dtype=np.float32))
                continue
            if reuse_stored and chunk.embedding and len(chunk.embedding) == dimension:
                embeddings.append(l2_normalize(np.asarray(chunk.embedding, dtype=np.float32)))
                continue
            vector = self.embed(text)
            dimension = vector.shape[0]
            embeddings.append(vector)
        logger.info("KB embeddings built for %d chunks", len(embeddings))
        return embeddings


def l2_normalize(vector: np.ndarray) -> np.ndarray:
    """Scale *vector* to unit length; zero vectors are returned unchanged."""
    norm = float(np.linalg.norm(vector))
    if norm == 0.0:
        return vector
    return vector / norm


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity of two equal-length vectors, ``0.0`` if either is zero."""
    norm_a = float(np.linalg.norm(a))
    norm_b = float(np.linalg.norm(b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))
