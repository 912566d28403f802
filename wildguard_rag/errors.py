"""Exception hierarchy for the assistant pipeline."""

from __future__ import annotations


class AssistantError(Exception):
    """Base class for all assistant failures."""


class KnowledgeLoadError(AssistantError):
    """Raised when a knowledge source cannot be read or parsed."""


class EmbedderUnavailable(AssistantError):
    """Raised when embedding is requested but the backend failed to initialize."""


class ModelUnavailable(AssistantError):
    """Raised when the language-model engine is not loaded."""


class SessionCreationError(AssistantError):
    """Raised when a generation session cannot be created on a loaded engine."""


class GenerationError(AssistantError):
    """Raised when the engine fails while generating a response."""
