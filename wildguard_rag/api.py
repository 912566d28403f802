"""Package-level entry point: create_assistant()."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from wildguard_rag.config import AssistantConfig, load_config
from wildguard_rag.conversation import ConversationController
from wildguard_rag.embedding import Embedder
from wildguard_rag.inference import InferenceSession
from wildguard_rag.knowledge import KnowledgeStore, resolve_knowledge_source
from wildguard_rag.prompts import PromptBuilder, PromptRegistry
from wildguard_rag.retrieval import Retriever

logger = logging.getLogger(__name__)


def load_knowledge_store(source: str | Path) -> KnowledgeStore:
    """Resolve a knowledge base name or path and load it.

    Unknown names and unreadable files yield an empty store.

    Parameters
    ----------
    source : str | Path
        Registered knowledge base name or a file path.

    Returns
    -------
    KnowledgeStore
    """
    try:
        path = resolve_knowledge_source(source)
    except KeyError:
        logger.exception("Knowledge source %r cannot be resolved. Retrieval will be disabled.", str(source))
        return KnowledgeStore()
    return KnowledgeStore.from_source(path)


def create_assistant(
    config: str | Path | dict[str, Any] | AssistantConfig | None = None,
    *,
    prompt_dirs: list[str | Path] | None = None,
    initialize: bool = True,
) -> ConversationController:
    """Build a ready-to-use conversation from configuration.

    Loads the knowledge base, initializes the embedder and chunk embeddings,
    loads the language-model engine, and publishes the startup greeting.
    Each stage degrades on failure instead of raising: the returned
    controller always works, possibly with keyword-only retrieval or a
    "model not loaded" reply.

    Parameters
    ----------
    config : str | Path | dict | AssistantConfig | None
        Configuration source; see :func:`~wildguard_rag.config.load_config`.
    prompt_dirs : list[str | Path] | None
        Extra directories scanned for prompt templates.
    initialize : bool
        Publish the greeting immediately. Set ``False`` to call
        :meth:`ConversationController.initialize` yourself.

    Returns
    -------
    ConversationController

    Raises
    ------
    KeyError
        If the configured prompt template is not registered.
    ValueError
        If the configuration is invalid.

    Examples
    --------
    >>> assistant = create_assistant("assistant.yaml")
    >>> assistant.send_message("How do I start a fire?").result()
    >>> print(assistant.messages.value[-1].text)
    """
    cfg = load_config(config)
    logger.info("Initializing assistant...")

    store = load_knowledge_store(cfg.knowledge.source)
    embedder = Embedder.from_config(cfg.embedder)
    retriever = Retriever(
        store,
        embedder,
        stopwords=cfg.retrieval.stopwords,
        prefer_title_matches=cfg.retrieval.prefer_title_matches,
        reuse_stored_embeddings=cfg.knowledge.reuse_stored_embeddings,
    )

    spec = PromptRegistry(prompt_dirs).get(cfg.prompt.template)
    builder = PromptBuilder(
        spec,
        context_chars_per_chunk=cfg.prompt.context_chars_per_chunk,
        max_prompt_chars=cfg.prompt.max_prompt_chars,
        assistant_name=cfg.assistant_name,
    )

    inference = InferenceSession(cfg.sampling, min_response_chars=cfg.min_response_chars)
    inference.load(cfg.engine)

    controller = ConversationController(
        store,
        retriever,
        builder,
        inference,
        top_k=cfg.retrieval.top_k,
        assistant_name=cfg.assistant_name,
        model_label=f"{cfg.engine.model} ({cfg.engine.type})",
    )
    if initialize:
        controller.initialize()
    return controller
