"""Text embedding abstraction and registry."""

from wildguard_rag.embedding.base import (
    Embedder,
    EmbeddingBackend,
    EmbeddingBackendRegistry,
    cosine_similarity,
    l2_normalize,
)

__all__ = ["Embedder", "EmbeddingBackend", "EmbeddingBackendRegistry", "cosine_similarity", "l2_normalize"]

# Each module registers itself via @EmbeddingBackendRegistry.register on import.


def _auto_register() -> None:
    """Import concrete backends."""
    import importlib

    for mod in ("sentence_transformers_backend",):
        importlib.import_module(f"wildguard_rag.embedding.{mod}")


_auto_register()
