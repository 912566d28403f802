"""ConversationController: orchestrates one retrieval-augmented chat."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor

from wildguard_rag.errors import ModelUnavailable, SessionCreationError
from wildguard_rag.inference import InferenceSession
from wildguard_rag.knowledge import KnowledgeStore
from wildguard_rag.models import Author, ChatMessage, KnowledgeChunk
from wildguard_rag.prompts import PromptBuilder
from wildguard_rag.retrieval import Retriever
from wildguard_rag.state import Observable

logger = logging.getLogger(__name__)

SESSION_NOT_READY_TEXT = "AI model session is not ready. Please restart the app."


class ConversationController:
    """Run the request/response cycle for a single conversation.

    Exposes three observable values to the presentation layer:
    ``is_loading``, ``messages`` and ``is_typing``. At most one turn is in
    flight; :meth:`send_message` while busy is a no-op.

    Parameters
    ----------
    store : KnowledgeStore
        Knowledge base, used for startup diagnostics.
    retriever : Retriever
        Context retrieval.
    prompt_builder : PromptBuilder
        Prompt assembly.
    inference : InferenceSession
        Engine and session owner.
    top_k : int
        Number of chunks retrieved per turn.
    assistant_name : str
        Name used in greeting messages.
    model_label : str
        Model description shown when the model is not loaded.
    executor : Executor | None
        Worker running the turns. Defaults to a single-thread pool owned by
        the controller.
    """

    def __init__(
        self,
        store: KnowledgeStore,
        retriever: Retriever,
        prompt_builder: PromptBuilder,
        inference: InferenceSession,
        *,
        top_k: int = 1,
        assistant_name: str = "WildGuard AI",
        model_label: str = "the configured model",
        executor: Executor | None = None,
    ) -> None:
        self._store = store
        self._retriever = retriever
        self._prompt_builder = prompt_builder
        self._inference = inference
        self._top_k = top_k
        self._assistant_name = assistant_name
        self._model_label = model_label
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="conversation")
        self._lock = threading.RLock()
        self._epoch = 0

        self.is_loading: Observable[bool] = Observable(True)
        self.messages: Observable[tuple[ChatMessage, ...]] = Observable(())
        self.is_typing: Observable[bool] = Observable(False)

    @property
    def greeting(self) -> str:
        return f"Hi! I'm {self._assistant_name}. How can I help you?"

    def initialize(self) -> None:
        """Publish the startup greeting and clear the loading flag."""
        lines: list[str] = []
        if self._inference.available:
            lines.append(self.greeting)
        else:
            lines.append("AI model is not loaded or failed to respond.")
            lines.append(f"\nExpected model: {self._model_label}")
        if not self._retriever.uses_embeddings:
            lines.append("\n⚠️ Embedding model not loaded, using keyword-only retrieval.")
        if self._store.is_empty():
            lines.append("\n⚠️ Knowledge base is empty or failed to load.")

        with self._lock:
            self.messages.set((ChatMessage(0, "\n".join(lines).strip(), Author.ASSISTANT),))
        self.is_loading.set(False)

    def send_message(self, text: str) -> Future | None:
        """Submit a user message.

        Parameters
        ----------
        text : str
            User input. Blank input is ignored.

        Returns
        -------
        Future | None
            The in-flight turn, or ``None`` when nothing was scheduled
            (busy, blank input, or model unavailable).
        """
        if not text or not text.strip():
            return None

        with self._lock:
            if self.is_typing.value:
                logger.debug("Ignoring message while a response is being generated")
                return None
            self._append(text, Author.USER)
            if not self._inference.available:
                self._append(
                    f"AI model is not loaded. Make sure {self._model_label} is available.",
                    Author.ASSISTANT,
                )
                return None
            self.is_typing.set(True)
            epoch = self._epoch

        try:
            return self._executor.submit(self._respond, text, epoch)
        except RuntimeError:
            logger.exception("Conversation worker is shut down")
            with self._lock:
                self._append("Error: the assistant is shutting down.", Author.ASSISTANT)
            self.is_typing.set(False)
            return None

    def reset_session(self) -> None:
        """Replace the history with a single greeting and open a fresh session.

        A turn still in flight keeps its session; its reply is discarded.
        """
        with self._lock:
            self._epoch += 1
            busy = self.is_typing.value
            self.messages.set((ChatMessage(0, self.greeting, Author.ASSISTANT),))
        if busy:
            logger.debug("Reset while a response is being generated; the pending reply will be dropped")
            return
        try:
            self._inference.create_session()
        except (ModelUnavailable, SessionCreationError):
            logger.warning("Could not recreate the generation session on reset", exc_info=True)

    def close(self) -> None:
        """Stop the worker and release the engine."""
        if self._owns_executor:
            self._executor.shutdown(wait=True)
        self._inference.close()

    def _respond(self, query: str, epoch: int) -> None:
        """Produce and append the assistant reply to *query*."""
        try:
            chunks = self._retrieve(query)
            prompt = self._prompt_builder.build(query, chunks)

            try:
                session = self._inference.create_session()
            except (ModelUnavailable, SessionCreationError):
                logger.exception("Session could not be created for this turn")
                self._reply(SESSION_NOT_READY_TEXT, epoch)
                return

            self._reply(self._inference.generate(prompt, session), epoch)
        except Exception as exc:
            logger.exception("Error during send_message()")
            self._reply(f"Error: {exc}", epoch)
        finally:
            self.is_typing.set(False)

    def _reply(self, text: str, epoch: int) -> None:
        """Append an assistant reply unless the history was reset since *epoch*."""
        with self._lock:
            if epoch != self._epoch:
                logger.debug("Dropping reply from a conversation that was reset")
                return
            self._append(text, Author.ASSISTANT)

    def _retrieve(self, query: str) -> list[KnowledgeChunk]:
        try:
            chunks = self._retriever.retrieve(query, self._top_k)
        except Exception:
            logger.exception("Retrieval failed, falling back to keyword search")
            chunks = self._retriever.keyword_search(query, self._top_k)

        logger.debug("Top chunks for query: %r", query)
        for i, chunk in enumerate(chunks):
            logger.debug("  [%d] %s", i, chunk.title or "no title")
        return chunks

    def _append(self, text: str, author: Author) -> None:
        """Append a message; callers hold ``self._lock``."""
        history = self.messages.value
        self.messages.set(history + (ChatMessage(len(history), text, author),))
