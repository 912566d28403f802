"""Prompt template discovery and registration."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from wildguard_rag.models import PromptSpec

logger = logging.getLogger(__name__)

_BUILTIN_DIR = Path(__file__).parent / "templates"


def load_prompt_spec(path: Path) -> PromptSpec:
    """Load a PromptSpec from a YAML file.

    Parameters
    ----------
    path : Path
        Path to a YAML prompt template file.

    Returns
    -------
    PromptSpec

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    """
    if not path.exists():
        msg = f"Prompt template not found: {path}"
        raise FileNotFoundError(msg)
    with open(path, encoding="utf-8") as fh:
        data: dict[str, Any] = yaml.safe_load(fh) or {}
    return PromptSpec(
        name=data.get("name", path.stem),
        version=str(data.get("version", "0.0")),
        description=data.get("description", ""),
        template=data.get("template", ""),
    )


class PromptRegistry:
    """Discover, cache, and retrieve prompt templates.

    Parameters
    ----------
    extra_dirs : list[str | Path] | None
        Additional directories to scan for ``.yaml`` prompt files.
    """

    def __init__(self, extra_dirs: list[str | Path] | None = None) -> None:
        self._specs: dict[str, PromptSpec] = {}
        self._scan(_BUILTIN_DIR)
        for d in extra_dirs or []:
            self._scan(Path(d))

    def _scan(self, directory: Path) -> None:
        """Scan *directory* for YAML prompt templates."""
        if not directory.is_dir():
            logger.warning("Prompt directory does not exist: %s", directory)
            return
        for path in sorted(directory.glob("*.yaml")):
            spec = load_prompt_spec(path)
            self._specs[spec.name] = spec
            logger.debug("Loaded prompt %s v%s from %s", spec.name, spec.version, path)

    def get(self, name: str) -> PromptSpec:
        """Return a prompt spec by name.

        Raises
        ------
        KeyError
            If *name* is not found.
        """
        if name not in self._specs:
            available = ", ".join(sorted(self._specs)) or "(none)"
            msg = f"Unknown prompt {name!r}. Available: {available}"
            raise KeyError(msg)
        return self._specs[name]

    def available(self) -> list[str]:
        """Return sorted list of registered prompt names."""
        return sorted(self._specs)

    def register(self, spec: PromptSpec) -> None:
        """Register a prompt spec programmatically.

        Parameters
        ----------
        spec : PromptSpec
            The prompt specification to register.
        """
        self._specs[spec.name] = spec
