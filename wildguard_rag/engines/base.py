"""Abstract language-model engine, generation session, and registry."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from wildguard_rag.config import SamplingConfig


class Session(ABC):
    """A stateful generation handle carrying sampling configuration.

    Parameters
    ----------
    sampling : SamplingConfig
        Temperature, top-k and top-p for this session.
    """

    def __init__(self, sampling: SamplingConfig) -> None:
        self.sampling = sampling
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @abstractmethod
    def generate(self, prompt: str) -> str:
        """Return the model's completion of *prompt*.

        Raises
        ------
        RuntimeError
            If the session was closed.
        """

    def close(self) -> None:
        """Release engine-side state. Safe to call more than once."""
        self._closed = True

    def _ensure_open(self) -> None:
        if self._closed:
            msg = "Session is closed"
            raise RuntimeError(msg)


class Engine(ABC):
    """A loaded language model that can open generation sessions.

    Subclasses must set ``name`` and implement ``create_session``.

    Parameters
    ----------
    model : str
        Model path or identifier.
    max_tokens : int
        Maximum tokens generated per response.
    max_top_k : int
        Upper bound for per-session top-k.
    device : str
        Preferred compute backend.
    """

    name: str = ""

    def __init__(self, model: str, *, max_tokens: int = 800, max_top_k: int = 40, device: str = "cpu") -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.max_top_k = max_top_k
        self.device = device

    @abstractmethod
    def create_session(self, sampling: SamplingConfig) -> Session:
        """Open a new session with *sampling*."""

    def close(self) -> None:
        """Release the model. The default does nothing."""

    def clamp_top_k(self, top_k: int) -> int:
        """Limit a session top-k to ``max_top_k``."""
        return min(top_k, self.max_top_k)


class EngineRegistry:
    """Discover and instantiate registered engines."""

    _engines: dict[str, type[Engine]] = {}

    @classmethod
    def register(cls, name: str):
        """Class decorator that registers an engine under *name*.

        Parameters
        ----------
        name : str
            Lookup key used in configuration files.

        Returns
        -------
        Callable
            The original class, unmodified.
        """

        def decorator(klass: type[Engine]) -> type[Engine]:
            cls._engines[name] = klass
            return klass

        return decorator

    @classmethod
    def create(cls, name: str, **kwargs: Any) -> Engine:
        """Instantiate a registered engine.

        Parameters
        ----------
        name : str
            Registered engine name.
        **kwargs
            Forwarded to the engine constructor.

        Returns
        -------
        Engine

        Raises
        ------
        KeyError
            If *name* is not registered.
        """
        if name not in cls._engines:
            available = ", ".join(sorted(cls._engines)) or "(none)"
            msg = f"Unknown engine {name!r}. Available: {available}"
            raise KeyError(msg)
        return cls._engines[name](**kwargs)

    @classmethod
    def available(cls) -> list[str]:
        """Return sorted list of registered engine names."""
        return sorted(cls._engines)
