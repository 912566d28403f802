"""Engine loading and per-turn generation session lifecycle."""

from __future__ import annotations

import logging
import threading
from enum import Enum

from wildguard_rag.config import EngineConfig, SamplingConfig
from wildguard_rag.engines import Engine, EngineRegistry, Session
from wildguard_rag.errors import GenerationError, ModelUnavailable, SessionCreationError

logger = logging.getLogger(__name__)

NON_ANSWER_TEXT = (
    "I couldn't generate a clear answer from the current knowledge base. "
    'Try asking in a simpler way, like: "What are the steps to treat hypothermia?"'
)
PLACEHOLDER_RESPONSES = frozenset({"...", "…"})


class SessionState(str, Enum):
    """Lifecycle of the engine and its session slot.

    Attributes
    ----------
    UNINITIALIZED : str
        No engine load attempted yet.
    READY : str
        Engine loaded, no session open.
    ACTIVE : str
        A session is open.
    UNAVAILABLE : str
        Engine load failed; terminal for this process.
    """

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    ACTIVE = "active"
    UNAVAILABLE = "unavailable"


def normalize_response(text: str, *, min_chars: int = 10) -> str:
    """Replace blank, placeholder or too-short output with a clarification request.

    Parameters
    ----------
    text : str
        Raw model output.
    min_chars : int
        Minimum length of a usable answer after stripping.

    Returns
    -------
    str
    """
    cleaned = text.strip()
    if not cleaned or cleaned in PLACEHOLDER_RESPONSES or len(cleaned) < min_chars:
        return NON_ANSWER_TEXT
    return cleaned


class InferenceSession:
    """Owns the engine and the single current generation session.

    Replacing the session closes the previous one first; failures while
    closing are logged and never block the new session.

    Parameters
    ----------
    sampling : SamplingConfig
        Sampling controls applied to every new session.
    min_response_chars : int
        Threshold passed to :func:`normalize_response`.
    """

    def __init__(self, sampling: SamplingConfig | None = None, *, min_response_chars: int = 10) -> None:
        self.sampling = sampling or SamplingConfig()
        self._min_response_chars = min_response_chars
        self._engine: Engine | None = None
        self._session: Session | None = None
        self._state = SessionState.UNINITIALIZED
        self._lock = threading.RLock()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def available(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @property
    def current_session(self) -> Session | None:
        return self._session

    def attach(self, engine: Engine) -> None:
        """Adopt an already-loaded engine."""
        with self._lock:
            if self._state is SessionState.UNAVAILABLE:
                logger.warning("Ignoring engine attach: model is unavailable for this process")
                return
            self._engine = engine
            self._state = SessionState.READY

    def load(self, config: EngineConfig) -> bool:
        """Load the configured engine and open a first session.

        Any failure moves the session to ``UNAVAILABLE`` for good.

        Parameters
        ----------
        config : EngineConfig

        Returns
        -------
        bool
            Whether the engine is loaded.
        """
        with self._lock:
            if self._state is SessionState.UNAVAILABLE:
                return False
            logger.info("Loading %s engine from %s", config.type, config.model)
            try:
                engine = EngineRegistry.create(
                    config.type,
                    model=config.model,
                    max_tokens=config.max_tokens,
                    max_top_k=config.max_top_k,
                    device=config.device,
                    **config.extra,
                )
            except Exception:
                logger.exception("Failed to load %s engine", config.type)
                self._engine = None
                self._session = None
                self._state = SessionState.UNAVAILABLE
                return False

            self._engine = engine
            self._state = SessionState.READY
            try:
                self.create_session()
            except SessionCreationError:
                logger.warning("Engine loaded but the first session could not be created")
            logger.info("Engine %s loaded, session active: %s", config.type, self._session is not None)
            return True

    def create_session(self) -> Session:
        """Close the current session, if any, and open a fresh one.

        Returns
        -------
        Session

        Raises
        ------
        ModelUnavailable
            If no engine is loaded.
        SessionCreationError
            If the engine refuses to open a session.
        """
        with self._lock:
            if self._engine is None:
                msg = "AI model is not loaded"
                raise ModelUnavailable(msg)

            previous, self._session = self._session, None
            if previous is not None:
                try:
                    previous.close()
                except Exception:
                    logger.warning("Error closing old session", exc_info=True)

            try:
                session = self._engine.create_session(self.sampling)
            except Exception as exc:
                self._state = SessionState.READY
                msg = f"Could not create generation session: {exc}"
                raise SessionCreationError(msg) from exc

            self._session = session
            self._state = SessionState.ACTIVE
            return session

    def generate(self, prompt: str, session: Session | None = None) -> str:
        """Generate a normalized response to *prompt*.

        Parameters
        ----------
        prompt : str
            Fully assembled prompt.
        session : Session | None
            Session to use; defaults to the current one.

        Returns
        -------
        str
            Model answer, or :data:`NON_ANSWER_TEXT` for unusable output.

        Raises
        ------
        ModelUnavailable
            If there is no session to generate with.
        GenerationError
            If the engine fails while generating.
        """
        session = session or self._session
        if session is None:
            msg = "No active generation session"
            raise ModelUnavailable(msg)
        try:
            raw = session.generate(prompt)
        except Exception as exc:
            msg = f"Generation failed: {exc}"
            raise GenerationError(msg) from exc
        logger.debug("LLM result length: %d", len(raw))
        answer = normalize_response(raw, min_chars=self._min_response_chars)
        logger.debug("LLM returned: %s...", answer[:120])
        return answer

    def close(self) -> None:
        """Close the session and release the engine."""
        with self._lock:
            if self._session is not None:
                try:
                    self._session.close()
                except Exception:
                    logger.warning("Error closing session", exc_info=True)
                self._session = None
            if self._engine is not None:
                try:
                    self._engine.close()
                except Exception:
                    logger.warning("Error closing engine", exc_info=True)
                self._engine = None
                self._state = SessionState.UNINITIALIZED
