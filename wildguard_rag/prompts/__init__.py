"""Prompt management: registry, rendering, and bounded assembly."""

from wildguard_rag.prompts.builder import NO_CONTEXT_TEXT, TRUNCATION_MARKER, PromptBuilder
from wildguard_rag.prompts.registry import PromptRegistry, load_prompt_spec
from wildguard_rag.prompts.renderer import render

__all__ = ["NO_CONTEXT_TEXT", "TRUNCATION_MARKER", "PromptBuilder", "PromptRegistry", "load_prompt_spec", "render"]
