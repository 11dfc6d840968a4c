"""
Response normalizer.

Turns an untrusted generator result into a well-formed story map in YAML
form. Only a missing top-level shape is fatal; everything below the top
level is repaired by substituting defaults.
"""

import logging

from storymapper.errors import MalformedGenerationResult
from storymapper.models import (
    DEFAULT_PRIORITY,
    PRIORITIES,
    SUPPORTING_TYPES,
    TECHNICAL_SPEC_FIELDS,
    StoryMap,
    from_yaml_form,
)

logger = logging.getLogger(__name__)

UNTITLED_EPIC = "Untitled Epic"
UNTITLED_FEATURE = "Untitled Feature"
UNTITLED_TASK = "Untitled Task"
UNTITLED_REQUIREMENT = "Untitled Supporting Requirement"
DEFAULT_EFFORT = "2 days"
DEFAULT_CRITERIA = "Acceptance criteria not specified"
DEFAULT_SUPPORTING_TYPE = "software_dependency"


def _as_mapping(value) -> dict:
    return value if isinstance(value, dict) else {}


def _as_list(value) -> list:
    return value if isinstance(value, list) else []


def _text(value, default: str = "") -> str:
    """Return value as a string, or default when empty/missing."""
    if value is None or value == "":
        return default
    return value if isinstance(value, str) else str(value)


def normalize_priority(value) -> str:
    priority = _text(value, DEFAULT_PRIORITY).strip().lower()
    return priority if priority in PRIORITIES else DEFAULT_PRIORITY


def normalize_supporting_requirement(raw) -> dict:
    raw = _as_mapping(raw)
    req_type = _text(raw.get("type"), DEFAULT_SUPPORTING_TYPE).strip().lower()
    if req_type not in SUPPORTING_TYPES:
        req_type = DEFAULT_SUPPORTING_TYPE

    requirement = {
        "title": _text(raw.get("title"), UNTITLED_REQUIREMENT),
        "description": _text(raw.get("description")),
        "type": req_type,
        "priority": normalize_priority(raw.get("priority")),
    }

    # Absent specs stay absent; present specs get every subfield
    specs = raw.get("technical_specs")
    if isinstance(specs, dict):
        requirement["technical_specs"] = {
            name: _text(specs.get(name)) for name in TECHNICAL_SPEC_FIELDS
        }
    return requirement


def normalize_task(raw) -> dict:
    raw = _as_mapping(raw)
    criteria = raw.get("acceptance_criteria")
    if isinstance(criteria, list) and criteria:
        criteria = [_text(c) for c in criteria]
    else:
        criteria = [DEFAULT_CRITERIA]

    return {
        "title": _text(raw.get("title"), UNTITLED_TASK),
        "description": _text(raw.get("description")),
        "priority": normalize_priority(raw.get("priority")),
        "effort": _text(raw.get("effort"), DEFAULT_EFFORT),
        "acceptance_criteria": criteria,
        "supporting_requirements": [
            normalize_supporting_requirement(r)
            for r in _as_list(raw.get("supporting_requirements"))
        ],
    }


def normalize_feature(raw) -> dict:
    raw = _as_mapping(raw)
    return {
        "title": _text(raw.get("title"), UNTITLED_FEATURE),
        "description": _text(raw.get("description")),
        "tasks": [normalize_task(t) for t in _as_list(raw.get("tasks"))],
    }


def normalize_epic(raw) -> dict:
    raw = _as_mapping(raw)
    return {
        "title": _text(raw.get("title"), UNTITLED_EPIC),
        "description": _text(raw.get("description")),
        "features": [normalize_feature(f) for f in _as_list(raw.get("features"))],
    }


def normalize_story_map(raw) -> dict:
    """Validate and repair a raw generation result.

    Args:
        raw: Parsed generator output, shaped (hopefully) like the YAML form

    Returns:
        Story map in YAML form with every field present

    Raises:
        MalformedGenerationResult: If title, description or the epics list
            is missing entirely
    """
    if not isinstance(raw, dict):
        raise MalformedGenerationResult(
            f"Expected a story map object, got {type(raw).__name__}"
        )

    missing = []
    if not raw.get("title"):
        missing.append("title")
    if not raw.get("description"):
        missing.append("description")
    if not isinstance(raw.get("epics"), list):
        missing.append("epics")
    if missing:
        raise MalformedGenerationResult(
            f"Invalid story map structure, missing or invalid: {', '.join(missing)}"
        )

    normalized = {
        "title": _text(raw["title"]),
        "description": _text(raw["description"]),
        "epics": [normalize_epic(e) for e in raw["epics"]],
    }

    task_count = sum(
        len(f["tasks"]) for e in normalized["epics"] for f in e["features"]
    )
    logger.debug(
        f"Normalized story map '{normalized['title']}': "
        f"{len(normalized['epics'])} epics, {task_count} tasks"
    )
    return normalized


def normalize_to_document(raw) -> StoryMap:
    """Normalize a raw result and build a document with fresh ids."""
    return from_yaml_form(normalize_story_map(raw))
