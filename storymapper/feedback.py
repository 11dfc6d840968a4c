"""
Feedback mutator.

Applies free-text feedback to a story map. Decision order, first match
wins:

  1. delete/cap supporting needs   always local, never sent to the generator
  2. anything else with a document delegated to the generator, normalized
  3. local heuristics              storymapper.mutations (also the fallback
                                   when the generator fails)
"""

import copy
import logging
import re
from typing import Optional

from storymapper.models import StoryMap, now_iso, task_from_yaml_form, task_to_yaml_form
from storymapper.mutations import SUPPORTING_NEED_KEYWORDS, apply_local, contains_any, empty_document
from storymapper.normalizer import normalize_task, normalize_to_document

logger = logging.getLogger(__name__)

DELETE_KEYWORDS = (
    "删除", "移除", "去掉", "清除",
    "delete", "remove", "clear",
)

CHINESE_NUMERALS = {
    "一": 1, "两": 2, "二": 2, "三": 3, "四": 4, "五": 5,
    "六": 6, "七": 7, "八": 8, "九": 9,
}

# Arabic digits, or a Chinese numeral up to 九十九 (十, 十二, 二十, 二十五)
_NUMBER = r"(\d+|[一两二三四五六七八九]?十[一二三四五六七八九]?|[一两二三四五六七八九])"

CAP_PATTERNS = (
    re.compile(rf"最多保留\s*{_NUMBER}"),
    re.compile(rf"只保留\s*{_NUMBER}"),
    re.compile(rf"保留最多\s*{_NUMBER}"),
    re.compile(rf"keep\s+at\s+most\s+{_NUMBER}", re.IGNORECASE),
    re.compile(rf"keep\s+only\s+{_NUMBER}", re.IGNORECASE),
    re.compile(rf"at\s+most\s+{_NUMBER}", re.IGNORECASE),
)


def _chinese_number(value: str) -> int:
    if "十" not in value:
        return CHINESE_NUMERALS[value]
    tens, _, ones = value.partition("十")
    return CHINESE_NUMERALS.get(tens, 1) * 10 + CHINESE_NUMERALS.get(ones, 0)


def parse_cap(text: str) -> Optional[int]:
    """Return N from a "keep at most N" phrase, or None."""
    for pattern in CAP_PATTERNS:
        match = pattern.search(text or "")
        if match:
            value = match.group(1)
            return int(value) if value.isdigit() else _chinese_number(value)
    return None


def is_supporting_need_deletion(text: str) -> bool:
    """Explicit removal of supporting needs, or a numeric cap on them.

    "只保留高优先级的支撑性需求" names no number, so it is a refinement
    for the generator rather than a deletion.
    """
    if not contains_any(text, SUPPORTING_NEED_KEYWORDS):
        return False
    return contains_any(text, DELETE_KEYWORDS) or parse_cap(text) is not None


def delete_supporting_needs(story_map: StoryMap, cap: Optional[int] = None) -> StoryMap:
    """Clear every feature's task list, or truncate it to the first cap tasks.

    Kept tasks are passed through the task normalizer so missing
    priority/effort/criteria get their defaults; their ids are kept.
    """
    result = copy.deepcopy(story_map)
    for epic in result.epics:
        for feature in epic.features:
            if cap is None:
                feature.tasks = []
                continue
            kept = []
            for task in feature.tasks[:cap]:
                normalized = task_from_yaml_form(normalize_task(task_to_yaml_form(task)), task.created_at)
                normalized.id = task.id
                normalized.status = task.status
                normalized.assignee = task.assignee
                normalized.dependencies = task.dependencies
                normalized.updated_at = now_iso()
                kept.append(normalized)
            feature.tasks = kept
    return result


class FeedbackMutator:
    """Turns (feedback, current story map) into a new story map.

    The generator is optional; without one every non-deletion edit is
    handled locally.
    """

    def __init__(self, generator=None):
        self.generator = generator

    def apply(self, feedback: str, current: Optional[StoryMap] = None) -> StoryMap:
        if is_supporting_need_deletion(feedback):
            cap = parse_cap(feedback)
            if cap is None:
                logger.info("Clearing all supporting needs")
            else:
                logger.info(f"Keeping at most {cap} supporting need(s) per activity")
            result = delete_supporting_needs(current or empty_document(feedback), cap)
            result.renumber()
            result.updated_at = now_iso()
            return result

        if current is not None and self.generator is not None:
            try:
                raw = self.generator.generate_with_feedback(current, feedback)
                result = normalize_to_document(raw)
                logger.info(f"Applied feedback via generator to '{current.title}'")
                return self._keep_identity(result, current)
            except Exception as e:
                logger.warning(f"Generator failed, falling back to local mutation: {e}")

        result = apply_local(feedback, current)
        if current is not None:
            result = self._keep_identity(result, current)
        return result

    @staticmethod
    def _keep_identity(result: StoryMap, current: StoryMap) -> StoryMap:
        result.id = current.id
        result.created_at = current.created_at
        result.updated_at = now_iso()
        return result
