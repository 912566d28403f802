"""Hybrid keyword + embedding retrieval over the knowledge store."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import numpy as np

from wildguard_rag.embedding import Embedder, cosine_similarity
from wildguard_rag.errors import EmbedderUnavailable
from wildguard_rag.knowledge import KnowledgeStore
from wildguard_rag.models import KnowledgeChunk

logger = logging.getLogger(__name__)

STOPWORDS: frozenset[str] = frozenset(
    {
        "how", "what", "when", "where", "why", "who",
        "to", "a", "an", "the", "is", "are", "do", "i",
        "you", "in", "of", "for", "on", "and", "or",
        "start", "make",
    }
)  # fmt: skip

_TOKEN_SPLIT = re.compile(r"[\s,.?!:;]+")


def tokenize(query: str) -> list[str]:
    """Lower-case *query* and split it on whitespace and punctuation."""
    return [token for token in _TOKEN_SPLIT.split(query.lower()) if token]


def content_words(tokens: Iterable[str], stopwords: Iterable[str] = STOPWORDS) -> set[str]:
    """Drop stopwords, keeping every token when nothing else is left."""
    tokens = list(tokens)
    stop = set(stopwords)
    words = {token for token in tokens if token not in stop}
    return words or set(tokens)


@dataclass
class ScoredChunk:
    """A chunk with its hybrid ranking components.

    Parameters
    ----------
    chunk : KnowledgeChunk
    similarity : float
        Cosine similarity to the query embedding.
    title_score : int
        Query content words found in topic/name.
    body_score : int
        Query content words found in region/text/description.
    """

    chunk: KnowledgeChunk
    similarity: float
    title_score: int
    body_score: int


class Retriever:
    """Rank knowledge chunks against a query.

    With a working embedder, chunks are ranked by title keyword overlap,
    then body keyword overlap, then cosine similarity. Without one, or when
    embedding the query fails, chunks are ranked by raw keyword hits.

    Parameters
    ----------
    store : KnowledgeStore
        Chunks to search.
    embedder : Embedder | None
        Embedder used for the query; ``None`` means keyword-only.
    chunk_embeddings : Sequence[np.ndarray] | None
        Embeddings parallel to ``store``. Computed with *embedder* when
        omitted and the embedder is available.
    stopwords : Iterable[str] | None
        Words ignored in overlap scoring. ``None`` uses :data:`STOPWORDS`.
    prefer_title_matches : bool
        Restrict candidates to title matches whenever any chunk has one.
    reuse_stored_embeddings : bool
        Reuse embeddings shipped with the source when computing them here.
    """

    def __init__(
        self,
        store: KnowledgeStore,
        embedder: Embedder | None = None,
        chunk_embeddings: Sequence[np.ndarray] | None = None,
        *,
        stopwords: Iterable[str] | None = None,
        prefer_title_matches: bool = True,
        reuse_stored_embeddings: bool = False,
    ) -> None:
        self._store = store
        self._embedder = embedder if embedder is not None and embedder.available else None
        self._stopwords = frozenset(stopwords) if stopwords is not None else STOPWORDS
        self._prefer_title_matches = prefer_title_matches

        if chunk_embeddings is not None:
            self._embeddings = list(chunk_embeddings)
        elif self._embedder is not None and not store.is_empty():
            try:
                self._embeddings = self._embedder.embed_chunks(store, reuse_stored=reuse_stored_embeddings)
            except Exception:
                logger.exception("Failed to build KB embeddings. Will fall back to keyword search.")
                self._embeddings = []
        else:
            self._embeddings = []

    @property
    def uses_embeddings(self) -> bool:
        """Whether the hybrid path is active."""
        return self._embedder is not None and bool(self._embeddings)

    def retrieve(self, query: str, k: int) -> list[KnowledgeChunk]:
        """Return up to *k* chunks, best first.

        Parameters
        ----------
        query : str
            User question.
        k : int
            Maximum number of chunks.

        Returns
        -------
        list[KnowledgeChunk]
            Possibly empty; "no context" is a valid result.
        """
        if not self.uses_embeddings:
            return self.keyword_search(query, k)
        try:
            return self.embedding_search(query, k)
        except Exception:
            logger.warning("Embedding failed, falling back to keyword search", exc_info=True)
            return self.keyword_search(query, k)

    def embedding_search(self, query: str, k: int) -> list[KnowledgeChunk]:
        """Hybrid ranking: title overlap, then body overlap, then similarity.

        Raises
        ------
        EmbedderUnavailable
            If no embedder is configured.
        """
        if self._store.is_empty() or not self._embeddings or k <= 0:
            return []
        if self._embedder is None:
            msg = "Text embedder is not initialized"
            raise EmbedderUnavailable(msg)

        query_vector = self._embedder.embed(query)
        if query_vector.size == 0:
            return []

        words = content_words(tokenize(query), self._stopwords)

        scored: list[ScoredChunk] = []
        for index, chunk in enumerate(self._store):
            vector = self._embeddings[index] if index < len(self._embeddings) else None
            if vector is None or vector.size == 0 or vector.shape != query_vector.shape:
                continue
            title_text = f"{chunk.topic or ''} {chunk.name or ''}".lower()
            body_text = f"{chunk.region or ''} {chunk.text or ''} {chunk.description or ''}".lower()
            scored.append(
                ScoredChunk(
                    chunk=chunk,
                    similarity=cosine_similarity(query_vector, vector),
                    title_score=sum(1 for word in words if word in title_text),
                    body_score=sum(1 for word in words if word in body_text),
                )
            )

        if not scored:
            return []

        candidates = scored
        if self._prefer_title_matches:
            with_title = [s for s in scored if s.title_score > 0]
            if with_title:
                candidates = with_title

        ranked = sorted(candidates, key=lambda s: (-s.title_score, -s.body_score, -s.similarity))
        for s in ranked[:k]:
            logger.debug(
                "Ranked %r title=%d body=%d sim=%.3f",
                s.chunk.title or "no title",
                s.title_score,
                s.body_score,
                s.similarity,
            )
        return [s.chunk for s in ranked[:k]]

    def keyword_search(self, query: str, k: int) -> list[KnowledgeChunk]:
        """Rank every chunk by how many query tokens occur in its text fields."""
        if self._store.is_empty() or k <= 0:
            return []
        tokens = tokenize(query)

        scored: list[tuple[KnowledgeChunk, int]] = []
        for chunk in self._store:
            text_all = " ".join(
                field or "" for field in (chunk.topic, chunk.region, chunk.text, chunk.name, chunk.description)
            ).lower()
            scored.append((chunk, sum(1 for token in tokens if token in text_all)))

        scored.sort(key=lambda item: item[1], reverse=True)
        return [chunk for chunk, _ in scored[:k]]
