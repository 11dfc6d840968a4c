"""
Template loader for storymapper.

Templates are YAML files shipped inside the package (storymapper/data/):

  - domains.yaml   fixed domain story maps + the generic fallback
  - feedback.yaml  fragments used by the local feedback mutator, per language
"""

import copy
import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "data"

_CJK_PATTERN = re.compile(r"[\u3400-\u9fff]")


class TemplateError(Exception):
    """Raised when a template file is missing or unreadable."""
    pass


@lru_cache(maxsize=8)
def _load_yaml(name: str) -> dict:
    path = TEMPLATES_DIR / f"{name}.yaml"
    if not path.exists():
        raise TemplateError(f"Template file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise TemplateError(f"Invalid template file {path}: {e}") from e
    logger.debug(f"Loaded template file: {name}")
    return data


def detect_language(text: str) -> str:
    """Return "zh" if text contains CJK characters, else "en"."""
    return "zh" if _CJK_PATTERN.search(text or "") else "en"


def feedback_templates(language: str) -> dict:
    """Return a private copy of the feedback fragments for a language."""
    data = _load_yaml("feedback")
    return copy.deepcopy(data.get(language) or data["en"])


def domain_names() -> list[str]:
    return [d["name"] for d in _load_yaml("domains")["domains"]]


def match_domain_template(text: str) -> Optional[dict]:
    """Return the first domain story map whose keywords appear in text.

    Returns:
        Story map in YAML form (a private copy), or None if nothing matched
    """
    lowered = (text or "").lower()
    for domain in _load_yaml("domains")["domains"]:
        if any(keyword.lower() in lowered for keyword in domain["keywords"]):
            logger.info(f"Matched domain template: {domain['name']}")
            return copy.deepcopy(domain["story_map"])
    return None


def generic_template(description: str) -> dict:
    """Return the generic story map carrying the given description."""
    story_map = copy.deepcopy(_load_yaml("domains")["generic"])
    story_map["description"] = story_map["description"].format(
        description=description or story_map["title"]
    )
    return story_map


def clear_cache():
    """Clear the template cache (useful for testing)."""
    _load_yaml.cache_clear()
