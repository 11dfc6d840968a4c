"""
Local heuristic story map edits.

Feedback is classified into a FeedbackAction by ordered keyword rules
(first hit wins) and turned into a bounded, template-based structural
change. Every function here returns a new StoryMap and leaves its input
untouched.

Template text comes from storymapper/data/feedback.yaml in the language of
the feedback.
"""

import copy
import logging
from enum import Enum
from typing import Optional

from storymapper.models import (
    Epic,
    Feature,
    StoryMap,
    UserStory,
    generate_id,
    now_iso,
    task_from_yaml_form,
)
from storymapper.normalizer import normalize_task, normalize_to_document
from storymapper.templates import detect_language, feedback_templates, match_domain_template

logger = logging.getLogger(__name__)


class FeedbackAction(Enum):
    ADD = "add"
    COMPLETE = "complete"
    MODIFY = "modify"
    DELETE = "delete"
    UNRECOGNIZED = "unrecognized"


SUPPORTING_NEED_KEYWORDS = ("支撑性需求", "支撑需求", "supporting need", "supporting requirement")

# Checked top-down, first hit wins
ACTION_RULES = (
    (("增加", "添加", "新增", "add"), FeedbackAction.ADD),
    (("补充", "完善", "补全", "complete", "supplement"), FeedbackAction.COMPLETE),
    (("修改", "调整", "更改", "优化", "modify", "change", "update", "adjust"), FeedbackAction.MODIFY),
    (("删除", "移除", "去掉", "delete", "remove"), FeedbackAction.DELETE),
)

DELETE_TARGET_RULES = (
    (SUPPORTING_NEED_KEYWORDS, "supporting_needs"),
    (("活动", "activity", "activities", "feature"), "activities"),
    (("阶段", "phase", "epic"), "phases"),
    (("所有", "全部", "all"), "all"),
)


def contains_any(text: str, keywords) -> bool:
    """Case-insensitive substring test against a keyword list."""
    lowered = (text or "").lower()
    return any(keyword.lower() in lowered for keyword in keywords)


def first_match(text: str, rules, default=None):
    """Return the result of the first (keywords, result) rule hit by text."""
    for keywords, result in rules:
        if contains_any(text, keywords):
            return result
    return default


def classify_feedback(text: str) -> FeedbackAction:
    return first_match(text, ACTION_RULES, FeedbackAction.UNRECOGNIZED)


def _fill(value, feedback: str):
    """Substitute {feedback} in every string of a template fragment."""
    if isinstance(value, str):
        return value.replace("{feedback}", feedback)
    if isinstance(value, list):
        return [_fill(v, feedback) for v in value]
    if isinstance(value, dict):
        return {k: _fill(v, feedback) for k, v in value.items()}
    return value


def _make_task(template: dict, feedback: str, timestamp: str) -> UserStory:
    return task_from_yaml_form(normalize_task(_fill(template, feedback)), timestamp)


def _make_feature(template: dict, task_templates: list, feedback: str, timestamp: str) -> Feature:
    return Feature(
        id=generate_id(),
        title=_fill(template["title"], feedback),
        description=_fill(template.get("description", ""), feedback),
        tasks=[_make_task(t, feedback, timestamp) for t in task_templates],
    )


def _make_epic(template: dict, feedback: str, features: Optional[list] = None) -> Epic:
    return Epic(
        id=generate_id(),
        title=_fill(template["title"], feedback),
        description=_fill(template.get("description", ""), feedback),
        features=features or [],
    )


def empty_document(feedback: str) -> StoryMap:
    """A document with no epics, titled with the default for the feedback language."""
    templates = feedback_templates(detect_language(feedback))
    return StoryMap(
        id=generate_id(),
        title=templates["default_title"],
        description=templates["default_description"],
    )


def skeleton_document(feedback: str) -> StoryMap:
    """A single epic / single feature / single task document."""
    templates = feedback_templates(detect_language(feedback))
    skeleton = templates["skeleton"]
    story_map = empty_document(feedback)
    feature = _make_feature(skeleton["feature"], [skeleton["task"]], feedback, story_map.created_at)
    story_map.epics.append(_make_epic(skeleton["epic"], feedback, [feature]))
    return story_map


def apply_add(story_map: StoryMap, feedback: str) -> StoryMap:
    """Append one epic holding one feature with the template tasks."""
    templates = feedback_templates(detect_language(feedback))
    result = copy.deepcopy(story_map)

    add_epics = templates["add_epics"]
    epic_template = next(
        (e for e in add_epics if e["keywords"] and contains_any(feedback, e["keywords"])),
        add_epics[-1],
    )
    feature = _make_feature(templates["add_feature"], templates["add_tasks"], feedback, now_iso())
    result.epics.append(_make_epic(epic_template, feedback, [feature]))
    logger.info(f"Added epic '{epic_template['title']}' ({epic_template['name']})")
    return result


def _represented(epic: Epic, category: dict) -> bool:
    titles = [f.title for f in epic.features]
    return any(
        contains_any(title, category["keywords"]) or category["feature"]["title"] in title
        for title in titles
    )


def apply_complete(story_map: StoryMap, feedback: str) -> StoryMap:
    """Supply the categories named in the feedback that the last epic lacks.

    With no category named, all of them are considered. Empty features are
    filled with user stories before any new feature is appended.
    """
    templates = feedback_templates(detect_language(feedback))
    result = copy.deepcopy(story_map)
    timestamp = now_iso()

    if not result.epics:
        result.epics.append(_make_epic(templates["skeleton"]["epic"], feedback))

    categories = templates["complete"]
    named = [name for name, cat in categories.items() if contains_any(feedback, cat["keywords"])]
    epic = result.epics[-1]

    for name in named or list(categories):
        category = categories[name]
        if name == "user_story":
            empty = [f for f in epic.features if not f.tasks]
            if empty:
                for feature in empty:
                    feature.tasks = [_make_task(t, feedback, timestamp) for t in category["tasks"]]
                logger.info(f"Filled {len(empty)} empty feature(s) in '{epic.title}' with user stories")
                continue
        if _represented(epic, category):
            logger.debug(f"Category '{name}' already present in '{epic.title}'")
            continue
        epic.features.append(
            _make_feature(category["feature"], category["tasks"], feedback, timestamp)
        )
        logger.info(f"Completed '{epic.title}' with category '{name}'")

    return result


def apply_modify(story_map: StoryMap, feedback: str) -> StoryMap:
    """Mark the first epic as refined and make sure it has content."""
    templates = feedback_templates(detect_language(feedback))
    modify = templates["modify"]
    result = copy.deepcopy(story_map)

    if not result.epics:
        result.epics.append(_make_epic(templates["skeleton"]["epic"], feedback))

    epic = result.epics[0]
    epic.title = f"{modify['title_prefix']}{epic.title}"
    epic.description = f"{epic.description}{modify['description_suffix']}"
    if not epic.features:
        epic.features.append(
            _make_feature(modify["feature"], [modify["task"]], feedback, now_iso())
        )
    logger.info(f"Modified epic '{epic.title}'")
    return result


def apply_delete(story_map: StoryMap, feedback: str) -> StoryMap:
    """Remove the part of the document the feedback names."""
    result = copy.deepcopy(story_map)
    target = first_match(feedback, DELETE_TARGET_RULES)

    if target == "supporting_needs":
        for epic in result.epics:
            for feature in epic.features:
                feature.tasks = []
    elif target == "activities":
        for epic in result.epics:
            epic.features = []
    elif target in ("phases", "all"):
        result.epics = []
    elif len(result.epics) > 1:
        # Unqualified delete drops the last epic but never the only one
        removed = result.epics.pop()
        logger.info(f"Removed last epic '{removed.title}'")
        return result
    else:
        logger.info("Delete feedback named nothing removable, document unchanged")
        return result

    logger.info(f"Deleted {target}")
    return result


def apply_unrecognized(story_map: Optional[StoryMap], feedback: str) -> StoryMap:
    """Fall back to a skeleton, or a domain template when there is no document."""
    if story_map is None:
        template = match_domain_template(feedback)
        if template is not None:
            return normalize_to_document(template)
    logger.info("Unrecognized feedback, returning skeleton document")
    return skeleton_document(feedback)


_HANDLERS = {
    FeedbackAction.ADD: apply_add,
    FeedbackAction.COMPLETE: apply_complete,
    FeedbackAction.MODIFY: apply_modify,
    FeedbackAction.DELETE: apply_delete,
}


def apply_local(feedback: str, current: Optional[StoryMap] = None) -> StoryMap:
    """Classify feedback and apply the matching local edit.

    Returns:
        A new StoryMap with order fields renumbered and updatedAt refreshed
    """
    action = classify_feedback(feedback)
    logger.info(f"Local mutation: {action.value}")

    if action is FeedbackAction.UNRECOGNIZED:
        result = apply_unrecognized(current, feedback)
    else:
        result = _HANDLERS[action](current if current is not None else empty_document(feedback), feedback)

    result.renumber()
    result.updated_at = now_iso()
    return result
