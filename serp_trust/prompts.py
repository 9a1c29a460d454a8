"""Prompt template loading and rendering."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jinja2
import yaml

logger = logging.getLogger(__name__)

_ENV = jinja2.Environment(undefined=jinja2.Undefined, trim_blocks=True, lstrip_blocks=True)


@dataclass
class PromptSpec:
    """Metadata and template content for a scoring prompt.

    Parameters
    ----------
    name : str
        Unique prompt identifier.
    version : str
        Semver-style version string.
    description : str
        Human-readable description.
    system_template : str
        Jinja2 template for the policy instructions.
    user_template : str
        Jinja2 template for the per-result query.
    """

    name: str
    version: str
    description: str
    system_template: str = ""
    user_template: str = ""


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

    logger.debug("Loaded prompt %s v%s from %s", data.get("name"), data.get("version"), path)
    return PromptSpec(
        name=data.get("name", "unknown"),
        version=str(data.get("version", "0.0")),
        description=data.get("description", ""),
        system_template=data.get("system", ""),
        user_template=data.get("user", ""),
    )


def render(spec: PromptSpec, variables: dict[str, Any]) -> list[dict[str, str]]:
    """Render a prompt spec into chat messages.

    Parameters
    ----------
    spec : PromptSpec
        The prompt template to render.
    variables : dict[str, Any]
        Template variables.

    Returns
    -------
    list[dict[str, str]]
        Chat messages suitable for ``Backend.complete``.
    """
    system_text = _render_template(spec.system_template, variables)
    user_text = _render_template(spec.user_template, variables)

    messages: list[dict[str, str]] = []
    if system_text:
        messages.append({"role": "system", "content": system_text})
    if user_text:
        messages.append({"role": "user", "content": user_text})
    return messages


def _render_template(template: str, variables: dict[str, Any]) -> str:
    if not template:
        return ""
    return _ENV.from_string(template).render(**variables).strip()
