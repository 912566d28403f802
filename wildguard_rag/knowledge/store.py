"""Immutable in-memory store of knowledge chunks."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any, Union

import yaml

from wildguard_rag.errors import KnowledgeLoadError
from wildguard_rag.models import KnowledgeChunk

logger = logging.getLogger(__name__)

KnowledgeSource = Union[str, Path, Sequence[dict[str, Any]]]


def load_chunks(source: KnowledgeSource) -> list[KnowledgeChunk]:
    """Parse a knowledge source into chunks.

    Parameters
    ----------
    source : str | Path | Sequence[dict]
        Path to a ``.json`` / ``.yaml`` / ``.yml`` file holding a list of
        records, or the records themselves.

    Returns
    -------
    list[KnowledgeChunk]

    Raises
    ------
    KnowledgeLoadError
        If the file is missing, unparsable, or not a list of records.
    """
    if isinstance(source, (str, Path)):
        records = _read_records(Path(source))
    else:
        records = source

    if not isinstance(records, (list, tuple)):
        msg = f"Knowledge source must contain a list of records, got {type(records).__name__}"
        raise KnowledgeLoadError(msg)

    try:
        return [KnowledgeChunk.from_dict(record) for record in records]
    except (TypeError, ValueError) as exc:
        msg = f"Malformed knowledge record: {exc}"
        raise KnowledgeLoadError(msg) from exc


def _read_records(path: Path) -> Any:
    """Read raw records from a JSON or YAML file."""
    if not path.is_file():
        msg = f"Knowledge source not found: {path}"
        raise KnowledgeLoadError(msg)
    try:
        with open(path, encoding="utf-8") as fh:
            if path.suffix.lower() in (".yaml", ".yml"):
                return yaml.safe_load(fh)
            return json.load(fh)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        msg = f"Failed to parse knowledge source {path}: {exc}"
        raise KnowledgeLoadError(msg) from exc


class KnowledgeStore:
    """Read-only collection of knowledge chunks.

    Parameters
    ----------
    chunks : Sequence[KnowledgeChunk]
        Chunks in source order.
    """

    def __init__(self, chunks: Sequence[KnowledgeChunk] = ()) -> None:
        self._chunks: tuple[KnowledgeChunk, ...] = tuple(chunks)

    @classmethod
    def from_source(cls, source: KnowledgeSource) -> KnowledgeStore:
        """Load a store, degrading to an empty store on any failure.

        Parameters
        ----------
        source : str | Path | Sequence[dict]
            Anything accepted by :func:`load_chunks`.

        Returns
        -------
        KnowledgeStore
        """
        try:
            chunks = load_chunks(source)
        except KnowledgeLoadError:
            logger.exception("Failed to load knowledge source. Retrieval will be disabled.")
            return cls()
        logger.info("Knowledge base loaded with %d chunks", len(chunks))
        return cls(chunks)

    def chunk_count(self) -> int:
        return len(self._chunks)

    def chunk_at(self, index: int) -> KnowledgeChunk:
        """Return the chunk at *index*.

        Raises
        ------
        IndexError
            If *index* is out of range.
        """
        return self._chunks[index]

    @property
    def chunks(self) -> tuple[KnowledgeChunk, ...]:
        return self._chunks

    def is_empty(self) -> bool:
        return not self._chunks

    def __len__(self) -> int:
        return len(self._chunks)

    def __iter__(self) -> Iterator[KnowledgeChunk]:
        return iter(self._chunks)
