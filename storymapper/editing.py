"""
Manual story map editing.

Direct edits addressed by element id: add, update, delete and
re-prioritize phases (epics), activities (features) and user stories
(tasks). Every function returns a new document and leaves its input
untouched; orders are renumbered and updatedAt refreshed on each edit.
"""

import copy
import logging
from typing import Optional

from storymapper.errors import ElementNotFound
from storymapper.models import (
    DEFAULT_PRIORITY,
    PRIORITIES,
    Epic,
    Feature,
    StoryMap,
    generate_id,
    now_iso,
    task_from_yaml_form,
)
from storymapper.normalizer import UNTITLED_EPIC, UNTITLED_FEATURE, normalize_task

logger = logging.getLogger(__name__)

ELEMENT_KINDS = ("epic", "feature", "task")


def locate(story_map: StoryMap, element_id: str) -> tuple[str, list, int]:
    """Find an element anywhere in the hierarchy.

    Returns:
        (kind, containing list, index) where kind is one of ELEMENT_KINDS

    Raises:
        ElementNotFound: If no epic, feature or task has element_id
    """
    for epic_index, epic in enumerate(story_map.epics):
        if epic.id == element_id:
            return "epic", story_map.epics, epic_index
        for feature_index, feature in enumerate(epic.features):
            if feature.id == element_id:
                return "feature", epic.features, feature_index
            for task_index, task in enumerate(feature.tasks):
                if task.id == element_id:
                    return "task", feature.tasks, task_index
    raise ElementNotFound(f"No phase, activity or user story with id '{element_id}' in '{story_map.title}'")


def _find(story_map: StoryMap, element_id: str, kind: str):
    found_kind, items, index = locate(story_map, element_id)
    if found_kind != kind:
        raise ElementNotFound(f"Expected {kind} id, but '{element_id}' is a {found_kind}")
    return items[index]


def _finish(result: StoryMap) -> StoryMap:
    result.renumber()
    result.updated_at = now_iso()
    return result


def add_epic(story_map: StoryMap, title: str, description: str = "") -> StoryMap:
    """Append a new, empty phase."""
    result = copy.deepcopy(story_map)
    epic = Epic(id=generate_id(), title=title.strip() or UNTITLED_EPIC, description=description)
    result.epics.append(epic)
    logger.info(f"Added epic '{epic.title}' ({epic.id})")
    return _finish(result)


def add_feature(story_map: StoryMap, epic_id: str, title: str, description: str = "") -> StoryMap:
    """Append a new, empty activity to a phase."""
    result = copy.deepcopy(story_map)
    epic = _find(result, epic_id, "epic")
    feature = Feature(id=generate_id(), title=title.strip() or UNTITLED_FEATURE, description=description)
    epic.features.append(feature)
    logger.info(f"Added feature '{feature.title}' ({feature.id}) to epic {epic_id}")
    return _finish(result)


def add_story(story_map: StoryMap, feature_id: str, title: str, description: str = "",
              priority: str = DEFAULT_PRIORITY) -> StoryMap:
    """Append a new user story to an activity.

    Missing effort and acceptance criteria get the same defaults a
    generated story would.
    """
    if priority not in PRIORITIES:
        raise ValueError(f"Invalid priority '{priority}' (expected one of {', '.join(PRIORITIES)})")
    result = copy.deepcopy(story_map)
    feature = _find(result, feature_id, "feature")
    task = task_from_yaml_form(normalize_task({
        "title": title,
        "description": description,
        "priority": priority,
    }))
    feature.tasks.append(task)
    logger.info(f"Added task '{task.title}' ({task.id}) to feature {feature_id}")
    return _finish(result)


def update_element(story_map: StoryMap, element_id: str, title: Optional[str] = None,
                   description: Optional[str] = None) -> StoryMap:
    """Change the title and/or description of any element.

    A blank title is ignored so an element never loses its name.
    """
    result = copy.deepcopy(story_map)
    kind, items, index = locate(result, element_id)
    element = items[index]
    if title is not None and title.strip():
        element.title = title.strip()
    if description is not None:
        element.description = description
    if kind == "task":
        element.updated_at = now_iso()
    return _finish(result)


def delete_element(story_map: StoryMap, element_id: str) -> StoryMap:
    """Remove an element together with everything beneath it."""
    result = copy.deepcopy(story_map)
    kind, items, index = locate(result, element_id)
    removed = items.pop(index)
    logger.info(f"Deleted {kind} '{removed.title}' ({element_id})")
    return _finish(result)


def set_priority(story_map: StoryMap, task_id: str, priority: str) -> StoryMap:
    """Set a user story's priority to high, medium or low."""
    if priority not in PRIORITIES:
        raise ValueError(f"Invalid priority '{priority}' (expected one of {', '.join(PRIORITIES)})")
    result = copy.deepcopy(story_map)
    task = _find(result, task_id, "task")
    task.priority = priority
    task.updated_at = now_iso()
    return _finish(result)
