"""Tests for the Embedder wrapper and embedding backends."""

from types import SimpleNamespace

import numpy as np
import pytest

import wildguard_rag.embedding.sentence_transformers_backend as st_backend
from wildguard_rag.config import EmbedderConfig
from wildguard_rag.embedding import (
    Embedder,
    EmbeddingBackend,
    EmbeddingBackendRegistry,
    cosine_similarity,
    l2_normalize,
)
from wildguard_rag.errors import EmbedderUnavailable
from wildguard_rag.models import KnowledgeChunk


class UnitBackend(EmbeddingBackend):
    name = "unit"
    normalizes = True

    def encode(self, text):
        return np.array([3.0, 4.0])


# -- Embedder ------------------------------------------------------------------


def test_embed_is_unit_length(embedder):
    vector = embedder.embed("fire fire water")
    assert vector.dtype == np.float32
    assert vector.shape == (6,)
    assert np.linalg.norm(vector) == pytest.approx(1.0, abs=1e-6)


def test_embed_truncates_input(backend):
    embedder = Embedder(backend, max_chars=5)
    embedder.embed("fire water shelter")
    assert backend.calls[-1] == "fire "


def test_zero_vector_is_returned_unchanged(embedder):
    vector = embedder.embed("nothing relevant here")
    assert not vector.any()


def test_normalizing_backend_passes_through():
    vector = Embedder(UnitBackend()).embed("anything")
    assert vector.tolist() == [3.0, 4.0]


def test_unavailable_embedder_raises():
    embedder = Embedder(None)
    assert not embedder.available
    with pytest.raises(EmbedderUnavailable):
        embedder.embed("fire")


def test_embed_chunks_empty_context_gets_empty_vector(embedder):
    chunks = [KnowledgeChunk(topic="Fire", text="fire"), KnowledgeChunk(topic="Blank")]
    vectors = embedder.embed_chunks(chunks)
    assert len(vectors) == 2
    assert vectors[0].size == 6
    assert vectors[1].size == 0


def test_embed_chunks_reuses_stored_vectors_of_matching_dimension(embedder, backend):
    stored = (0.0, 2.0, 0.0, 0.0, 0.0, 0.0)
    chunks = [
        KnowledgeChunk(topic="Fire", text="fire"),
        KnowledgeChunk(topic="Water", text="water", embedding=stored),
        KnowledgeChunk(topic="Cold", text="cold", embedding=(1.0, 2.0)),
    ]
    vectors = embedder.embed_chunks(chunks, reuse_stored=True)
    assert backend.calls == ["fire", "cold"]
    assert vectors[1].tolist() == [0.0, 1.0, 0.0, 0.0, 0.0, 0.0]
    assert vectors[2].shape == (6,)


def test_embed_chunks_ignores_stored_vectors_by_default(embedder, backend):
    chunks = [KnowledgeChunk(text="fire", embedding=(1.0,) * 6), KnowledgeChunk(text="water", embedding=(1.0,) * 6)]
    embedder.embed_chunks(chunks)
    assert backend.calls == ["fire", "water"]


def test_from_config_with_registered_backend():
    embedder = Embedder.from_config(EmbedderConfig(backend="keyword_counts", max_chars=100))
    assert embedder.available
    assert embedder.max_chars == 100


def test_from_config_disabled():
    assert not Embedder.from_config(EmbedderConfig(backend="keyword_counts", enabled=False)).available


def test_from_config_unknown_backend_degrades():
    assert not Embedder.from_config(EmbedderConfig(backend="no_such_backend")).available


def test_registry_unknown_raises():
    with pytest.raises(KeyError, match="Unknown embedding backend"):
        EmbeddingBackendRegistry.create("no_such_backend")


def test_registry_lists_builtin_backend():
    assert "sentence_transformers" in EmbeddingBackendRegistry.available()


# -- Vector helpers ------------------------------------------------------------


def test_cosine_similarity():
    assert cosine_similarity(np.array([1.0, 0.0]), np.array([2.0, 0.0])) == pytest.approx(1.0)
    assert cosine_similarity(np.array([1.0, 0.0]), np.array([0.0, 1.0])) == pytest.approx(0.0)
    assert cosine_similarity(np.zeros(2), np.array([1.0, 0.0])) == 0.0


def test_l2_normalize():
    assert l2_normalize(np.array([3.0, 4.0])).tolist() == pytest.approx([0.6, 0.8])
    assert l2_normalize(np.zeros(3)).tolist() == [0.0, 0.0, 0.0]


# -- sentence-transformers backend ---------------------------------------------


class FakeSentenceTransformer:
    def __init__(self, model, device=None):
        self.model = model
        self.device = device
        self.encode_kwargs = None

    def encode(self, text, **kwargs):
        self.encode_kwargs = kwargs
        return np.array([0.6, 0.8], dtype=np.float32)

    def get_sentence_embedding_dimension(self):
        return 2


@pytest.fixture()
def fake_sentence_transformers(monkeypatch):
    fake_torch = SimpleNamespace(cuda=SimpleNamespace(is_available=lambda: False))
    monkeypatch.setattr(st_backend, "_HAS_SENTENCE_TRANSFORMERS", True)
    monkeypatch.setattr(st_backend, "torch", fake_torch, raising=False)
    monkeypatch.setattr(st_backend, "SentenceTransformer", FakeSentenceTransformer, raising=False)


def test_sentence_transformer_backend(fake_sentence_transformers):
    backend = EmbeddingBackendRegistry.create("sentence_transformers", model="all-MiniLM-L6-v2", device=None)
    assert backend.device == "cpu"
    assert backend.embedding_dim == 2

    vector = Embedder(backend).embed("How do I purify water?")
    assert vector.tolist() == pytest.approx([0.6, 0.8])
    assert backend._model.encode_kwargs["normalize_embeddings"] is True
    assert backend._model.encode_kwargs["show_progress_bar"] is False


def test_sentence_transformer_backend_requires_package(monkeypatch):
    monkeypatch.setattr(st_backend, "_HAS_SENTENCE_TRANSFORMERS", False)
    with pytest.raises(ImportError, match="sentence-transformers"):
        st_backend.SentenceTransformerBackend()
