"""Knowledge source loading and registration."""

from wildguard_rag.knowledge.registry import (
    clear_knowledge_registry,
    list_knowledge_bases,
    register_knowledge_base,
    resolve_knowledge_source,
)
from wildguard_rag.knowledge.store import KnowledgeStore, load_chunks

__all__ = [
    "KnowledgeStore",
    "clear_knowledge_registry",
    "list_knowledge_bases",
    "load_chunks",
    "register_knowledge_base",
    "resolve_knowledge_source",
]
