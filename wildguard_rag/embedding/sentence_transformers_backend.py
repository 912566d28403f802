"""sentence-transformers embedding backend."""

from __future__ import annotations

import logging

import numpy as np

from wildguard_rag.embedding.base import EmbeddingBackend, EmbeddingBackendRegistry

logger = logging.getLogger(__name__)

try:
    import torch
    from sentence_transformers import SentenceTransformer

    _HAS_SENTENCE_TRANSFORMERS = True
except ImportError:  # pragma: no cover
    _HAS_SENTENCE_TRANSFORMERS = False


@EmbeddingBackendRegistry.register("sentence_transformers")
class SentenceTransformerBackend(EmbeddingBackend):
    """Backend powered by a sentence-transformers model.

    Output is unit-length (``normalize_embeddings=True``), so the
    :class:`~wildguard_rag.embedding.base.Embedder` skips its own
    normalization.

    Parameters
    ----------
    model : str
        Model name or local path (e.g. ``"all-MiniLM-L6-v2"``, 384 dimensions).
    device : str | None
        ``"cpu"`` or ``"cuda"``. If None, will auto-detect.
    """

    name = "sentence_transformers"
    normalizes = True

    def __init__(self, model: str = "all-MiniLM-L6-v2", device: str | None = None) -> None:
        if not _HAS_SENTENCE_TRANSFORMERS:
            msg = "The 'sentence-transformers' package is required: pip install sentence-transformers"
            raise ImportError(msg)
        if device is None:
            device = "cuda" if torch.cuda.is_available() else "cpu"
        self.model_name = model
        self.device = device
        logger.debug("Loading embedding model %s on %s", model, device)
        self._model = SentenceTransformer(model, device=device)

    @property
    def embedding_dim(self) -> int:
        return self._model.get_sentence_embedding_dimension()

    def encode(self, text: str) -> np.ndarray:
        return self._model.encode(text, convert_to_numpy=True, normalize_embeddings=True, show_progress_bar=False)
