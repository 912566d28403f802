"""Language-model engine abstraction and registry."""

from wildguard_rag.engines.base import Engine, EngineRegistry, Session

__all__ = ["Engine", "EngineRegistry", "Session"]

# Auto-register concrete engines.
# Each module registers itself via @EngineRegistry.register on import.


def _auto_register() -> None:
    """Import concrete engines."""
    import importlib

    for mod in ("transformers_engine", "openai_engine", "litellm_engine"):
        importlib.import_module(f"wildguard_rag.engines.{mod}")


_auto_register()
