"""Template rendering for prompt specs."""

from __future__ import annotations

from typing import Any

import jinja2

from wildguard_rag.models import PromptSpec

_ENV = jinja2.Environment(undefined=jinja2.Undefined, keep_trailing_newline=False, autoescape=False)


def render(spec: PromptSpec, variables: dict[str, Any]) -> str:
    """Render a prompt spec into the final prompt text.

    Parameters
    ----------
    spec : PromptSpec
        The prompt template to render.
    variables : dict[str, Any]
        Template variables (``context`` and ``question``).

    Returns
    -------
    str
        Rendered prompt with surrounding whitespace stripped.
    """
    if not spec.template:
        return ""
    return _ENV.from_string(spec.template).render(**variables).strip()
