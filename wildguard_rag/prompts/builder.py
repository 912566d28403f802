"""Bounded-length prompt assembly from retrieved context."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from wildguard_rag.models import KnowledgeChunk, PromptSpec
from wildguard_rag.prompts.renderer import render

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n\n[Context truncated for size; answer based on the visible part only.]"
NO_CONTEXT_TEXT = "No specific survival notes were found for this question in the knowledge base."


class PromptBuilder:
    """Compose the instruction prompt for one question.

    Parameters
    ----------
    spec : PromptSpec
        Template receiving ``context``, ``question`` and ``assistant_name``.
    context_chars_per_chunk : int
        Each passage is cut to this many characters.
    max_prompt_chars : int
        The returned prompt never exceeds this length.
    assistant_name : str
        Name the assistant introduces itself with.

    Raises
    ------
    ValueError
        If *max_prompt_chars* cannot hold the truncation marker.
    """

    def __init__(
        self,
        spec: PromptSpec,
        *,
        context_chars_per_chunk: int = 400,
        max_prompt_chars: int = 7000,
        assistant_name: str = "WildGuard AI",
    ) -> None:
        if max_prompt_chars <= len(TRUNCATION_MARKER):
            msg = f"max_prompt_chars must exceed {len(TRUNCATION_MARKER)}, got {max_prompt_chars}"
            raise ValueError(msg)
        self._spec = spec
        self._context_chars_per_chunk = context_chars_per_chunk
        self._max_prompt_chars = max_prompt_chars
        self._assistant_name = assistant_name

    @property
    def max_prompt_chars(self) -> int:
        return self._max_prompt_chars

    def context_block(self, chunks: Sequence[KnowledgeChunk]) -> str:
        """Join the truncated passages of *chunks* into one block.

        Chunks whose rendering is empty are left out.
        """
        passages = [chunk.context_text()[: self._context_chars_per_chunk] for chunk in chunks]
        passages = [p for p in passages if p.strip()]
        if not passages:
            return NO_CONTEXT_TEXT
        return "\n\n".join(f"- {p}" for p in passages)

    def build(self, query: str, context: Sequence[KnowledgeChunk]) -> str:
        """Render the prompt for *query* over *context*.

        Parameters
        ----------
        query : str
            The user question, embedded verbatim.
        context : Sequence[KnowledgeChunk]
            Retrieved chunks, best first.

        Returns
        -------
        str
            At most ``max_prompt_chars`` characters. An oversized prompt is
            cut and ends with :data:`TRUNCATION_MARKER`.
        """
        prompt = render(
            self._spec,
            {
                "context": self.context_block(context),
                "question": query,
                "assistant_name": self._assistant_name,
            },
        )
        if len(prompt) > self._max_prompt_chars:
            logger.warning("Prompt of %d chars truncated to %d", len(prompt), self._max_prompt_chars)
            prompt = prompt[: self._max_prompt_chars - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER
        return prompt
