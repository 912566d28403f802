"""Registry for named knowledge sources."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

_DATA_DIR = Path(__file__).parent / "data"
_registry: dict[str, Path] = {}
_defaults_loaded = False


def _ensure_defaults_loaded() -> None:
    """Lazily register built-in knowledge sources on first access."""
    global _defaults_loaded
    if not _defaults_loaded:
        _registry["wilderness"] = _DATA_DIR / "wilderness.json"
        _defaults_loaded = True


def register_knowledge_base(name: str, path: str | Path) -> None:
    """Register a knowledge source file under *name*.

    Parameters
    ----------
    name : str
        Registry key used to look up this knowledge source.
    path : str | Path
        Path to a JSON or YAML file holding a list of knowledge records.
    """
    _ensure_defaults_loaded()
    _registry[name] = Path(path)
    logger.debug("Registered knowledge base %r → %s", name, path)


def resolve_knowledge_source(name_or_path: str | Path) -> Path:
    """Return the file behind a registered name, or the path itself.

    Parameters
    ----------
    name_or_path : str | Path
        Registered knowledge base name or a filesystem path.

    Returns
    -------
    Path

    Raises
    ------
    KeyError
        If *name_or_path* is neither registered nor an existing file.
    """
    _ensure_defaults_loaded()
    key = str(name_or_path)
    if key in _registry:
        return _registry[key]
    path = Path(name_or_path)
    if path.is_file():
        return path
    available = ", ".join(sorted(_registry)) or "(none)"
    msg = f"Knowledge base {key!r} not registered. Available: {available}"
    raise KeyError(msg)


def list_knowledge_bases() -> list[str]:
    """Return sorted list of registered knowledge base names.

    Returns
    -------
    list[str]
    """
    _ensure_defaults_loaded()
    return sorted(_registry)


def clear_knowledge_registry() -> None:
    """Reset the registry and defaults flag.

    Intended for use in tests to ensure a clean state.
    """
    global _defaults_loaded
    _registry.clear()
    _defaults_loaded = False
