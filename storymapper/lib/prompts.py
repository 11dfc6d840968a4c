"""
Prompt templates for the story map generator.

Each template is a Markdown file in prompts/ that opens with an HTML
comment header naming its variables:

    <!--
    Initial story map generation.
    Variables: {product_description}, {response_language}
    -->

The header is documentation for humans and is never sent to the model.
Rendering uses str.format(), so JSON examples in a template need doubled
braces ({{ and }}).
"""

import logging
import re
from functools import lru_cache
from pathlib import Path

logger = logging.getLogger(__name__)

__all__ = [
    "PromptError",
    "load_prompt",
    "declared_variables",
    "render_prompt",
    "clear_cache",
    "PROMPTS_DIR",
]

_COMMENT_PATTERN = re.compile(r'<!--(.*?)-->\s*', re.DOTALL)
_VARIABLES_LINE = re.compile(r'^\s*Variables:(.*)$', re.MULTILINE)
_PLACEHOLDER = re.compile(r'\{(\w+)\}')


def _locate_prompts_dir() -> Path:
    """Walk up from this file to the checkout holding storymapper/ and prompts/."""
    here = Path(__file__).resolve()
    for candidate in here.parents:
        if (candidate / "storymapper").is_dir() and (candidate / "prompts").is_dir():
            return candidate / "prompts"
    raise RuntimeError(f"No prompts/ directory found above {here}")


PROMPTS_DIR = _locate_prompts_dir()


class PromptError(Exception):
    """Raised when a prompt is missing or cannot be rendered."""
    pass


@lru_cache(maxsize=8)
def _read(name: str) -> str:
    path = PROMPTS_DIR / f"{name}.md"
    if not path.exists():
        raise PromptError(f"Prompt template '{name}' not found. Expected file: {path}")
    logger.debug(f"Loading prompt template: {name}")
    return path.read_text(encoding="utf-8")


@lru_cache(maxsize=8)
def load_prompt(name: str) -> str:
    """Return the body of prompts/<name>.md with comment blocks removed.

    Raises:
        PromptError: If the file does not exist
    """
    return _COMMENT_PATTERN.sub('', _read(name)).lstrip()


def declared_variables(name: str) -> tuple[str, ...]:
    """Variables listed on the template's "Variables:" header line, in order."""
    names = []
    for comment in _COMMENT_PATTERN.findall(_read(name)):
        for line in _VARIABLES_LINE.findall(comment):
            names.extend(_PLACEHOLDER.findall(line))
    return tuple(names)


def render_prompt(name: str, **variables) -> str:
    """Fill a template.

    Every declared variable must be supplied. Extra keyword arguments are
    ignored with a debug message.

    Raises:
        PromptError: If the template is missing or a variable is not supplied

    Example:
        render_prompt('refine_story_map', story_map_json='{...}',
                      feedback='增加设备管理', response_language='Simplified Chinese')
    """
    template = load_prompt(name)

    missing = [v for v in declared_variables(name) if v not in variables]
    if missing:
        raise PromptError(
            f"Prompt '{name}' needs {', '.join(missing)}; got {sorted(variables)}"
        )
    unused = set(variables) - set(declared_variables(name))
    if unused:
        logger.debug(f"Prompt '{name}' ignores {sorted(unused)}")

    try:
        return template.format(**variables)
    except KeyError as e:
        # Placeholder used in the body but missing from the header
        raise PromptError(f"Prompt '{name}' uses undeclared variable {e}") from e


def clear_cache():
    """Clear the template caches."""
    _read.cache_clear()
    load_prompt.cache_clear()
