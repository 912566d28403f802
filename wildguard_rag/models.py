"""Data models for knowledge chunks, chat messages, and prompt templates."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Author(str, Enum):
    """Who wrote a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    """A single turn in a conversation.

    Parameters
    ----------
    id : int
        Position of the message in the history at insertion time.
    text : str
        Message body.
    author : Author
        ``Author.USER`` or ``Author.ASSISTANT``.
    """

    id: int
    text: str
    author: Author


@dataclass(frozen=True)
class KnowledgeChunk:
    """One retrievable fact or procedure.

    Every field is optional. A chunk is only useful when it carries a
    ``text`` body or a ``description``; chunks with neither render an empty
    context passage.

    Parameters
    ----------
    topic : str | None
        Subject heading (e.g. ``"Fire"``).
    region : str | None
        Geographic or environmental scope.
    name : str | None
        Named item, such as a knot name.
    description : str | None
        Short description, used for structured rendering.
    use_cases : tuple[str, ...] | None
        Situations the item applies to.
    instructions : str | None
        Step-by-step instructions.
    text : str | None
        Free-text body; takes precedence over the structured fields.
    embedding : tuple[float, ...]
        Stored embedding vector. Empty when none was shipped with the source.
    """

    topic: str | None = None
    region: str | None = None
    name: str | None = None
    description: str | None = None
    use_cases: tuple[str, ...] | None = None
    instructions: str | None = None
    text: str | None = None
    embedding: tuple[float, ...] = field(default=(), repr=False)

    @property
    def title(self) -> str | None:
        """Return the topic, else the name."""
        return self.topic or self.name

    def context_text(self) -> str:
        """Render the chunk as a human-readable context passage.

        Returns
        -------
        str
            The ``text`` body if present, otherwise a structured rendering of
            title, description, use-cases and instructions, otherwise ``""``.
        """
        if self.text:
            return self.text
        if self.description:
            title = self.title or "Untitled"
            uses = ", ".join(self.use_cases or ())
            instructions = self.instructions or ""
            return f"{title}.\nDescription: {self.description}\nUses: {uses}\nInstructions: {instructions}"
        return ""

    @classmethod
    def from_dict(cls, record: dict[str, Any]) -> KnowledgeChunk:
        """Construct a chunk from a knowledge-source record.

        Missing keys are treated as absent. ``knot_name`` is accepted as an
        alias of ``name``.

        Parameters
        ----------
        record : dict
            A single knowledge record.

        Returns
        -------
        KnowledgeChunk

        Raises
        ------
        TypeError
            If *record* is not a mapping.
        """
        if not isinstance(record, dict):
            msg = f"Knowledge record must be a mapping, got {type(record).__name__}"
            raise TypeError(msg)
        use_cases = record.get("use_cases")
        return cls(
            topic=_optional_str(record.get("topic")),
            region=_optional_str(record.get("region")),
            name=_optional_str(record.get("name", record.get("knot_name"))),
            description=_optional_str(record.get("description")),
            use_cases=tuple(str(u) for u in use_cases) if use_cases else None,
            instructions=_optional_str(record.get("instructions")),
            text=_optional_str(record.get("text")),
            embedding=tuple(float(v) for v in record.get("embedding") or ()),
        )


@dataclass
class PromptSpec:
    """Metadata and template content for an instruction prompt.

    Parameters
    ----------
    name : str
        Unique prompt identifier.
    version : str
        Semver-style version string.
    description : str
        Human-readable description.
    template : str
        Jinja2 template receiving ``context`` and ``question``.
    """

    name: str
    version: str
    description: str
    template: str = ""


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)
