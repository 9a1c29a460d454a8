"""Prompt templates per result category, plus named overrides.

Every registered scoring policy contributes its own template, bound to
the policy's category. Extra prompts can be registered by name and
optionally made the default for a category.
"""

from __future__ import annotations

import logging
from pathlib import Path

from serp_trust.errors import UnsupportedCategoryError
from serp_trust.models import Category
from serp_trust.policies import PolicySelector
from serp_trust.prompts import PromptSpec, load_prompt_spec

logger = logging.getLogger(__name__)

_registry: dict[str, Path] = {}
_category_prompts: dict[Category, str] = {}
_defaults_loaded = False


def _ensure_defaults_loaded() -> None:
    """Lazily register each policy's template under its category on first access."""
    global _defaults_loaded
    if not _defaults_loaded:
        for category, policy in PolicySelector.policies().items():
            _registry.setdefault(policy.prompt_name, policy.template_path())
            _category_prompts.setdefault(category, policy.prompt_name)
        _defaults_loaded = True


def register_prompt(name: str, path: str | Path, category: Category | str | None = None) -> None:
    """Register a prompt YAML file under *name*.

    Parameters
    ----------
    name : str
        Registry key used to look up this prompt.
    path : str | Path
        Path to a YAML prompt template file.
    category : Category | str | None
        When given, results of this category are scored with this prompt
        instead of their policy's built-in template.

    Raises
    ------
    UnsupportedCategoryError
        If *category* does not name a known category.
    """
    resolved = Category.parse(category) if category is not None else None
    _registry[name] = Path(path)
    if resolved is not None:
        _category_prompts[resolved] = name
        logger.debug("Registered prompt %r -> %s for %s", name, path, resolved.value)
    else:
        logger.debug("Registered prompt %r -> %s", name, path)


def prompt_name_for(category: Category | str) -> str:
    """Return the name of the prompt used for *category*.

    Raises
    ------
    UnsupportedCategoryError
        If no prompt is bound to *category*.
    """
    _ensure_defaults_loaded()
    resolved = Category.parse(category)
    if resolved not in _category_prompts:
        raise UnsupportedCategoryError(category)
    return _category_prompts[resolved]


def load_prompt(name: str) -> PromptSpec:
    """Load and return the PromptSpec registered under *name*.

    Parameters
    ----------
    name : str
        Registered prompt name.

    Returns
    -------
    PromptSpec

    Raises
    ------
    KeyError
        If *name* is not registered.
    """
    _ensure_defaults_loaded()
    if name not in _registry:
        available = ", ".join(sorted(_registry)) or "(none)"
        msg = f"Prompt {name!r} not registered. Available: {available}"
        raise KeyError(msg)
    return load_prompt_spec(_registry[name])


def load_category_prompt(category: Category | str) -> PromptSpec:
    """Load the prompt bound to *category*."""
    return load_prompt(prompt_name_for(category))


def list_prompts() -> list[str]:
    """Return sorted list of registered prompt names."""
    _ensure_defaults_loaded()
    return sorted(_registry)


def category_prompts() -> dict[str, str]:
    """Return the prompt name bound to each category, keyed by category label."""
    _ensure_defaults_loaded()
    return {category.value: name for category, name in sorted(_category_prompts.items(), key=lambda kv: kv[0].value)}


def clear_prompt_registry() -> None:
    """Reset the registry, category bindings and defaults flag.

    Intended for use in tests to ensure a clean state.
    """
    global _defaults_loaded
    _registry.clear()
    _category_prompts.clear()
    _defaults_loaded = False
