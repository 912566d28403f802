"""Offline retrieval-augmented survival assistant on a local language model."""

from wildguard_rag.api import create_assistant, load_knowledge_store
from wildguard_rag.config import AssistantConfig, SamplingConfig, load_config
from wildguard_rag.conversation import ConversationController
from wildguard_rag.embedding import Embedder, EmbeddingBackendRegistry
from wildguard_rag.engines import EngineRegistry
from wildguard_rag.inference import InferenceSession, SessionState
from wildguard_rag.knowledge import KnowledgeStore, list_knowledge_bases, register_knowledge_base
from wildguard_rag.models import Author, ChatMessage, KnowledgeChunk
from wildguard_rag.prompts import PromptBuilder, PromptRegistry
from wildguard_rag.retrieval import Retriever

__all__ = [
    "AssistantConfig",
    "Author",
    "ChatMessage",
    "ConversationController",
    "Embedder",
    "EmbeddingBackendRegistry",
    "EngineRegistry",
    "InferenceSession",
    "KnowledgeChunk",
    "KnowledgeStore",
    "PromptBuilder",
    "PromptRegistry",
    "Retriever",
    "SamplingConfig",
    "SessionState",
    "create_assistant",
    "list_knowledge_bases",
    "load_config",
    "load_knowledge_store",
    "register_knowledge_base",
]
