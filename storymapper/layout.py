"""
Layout projection.

Builds a presentation-ready render model from a stored story map: one lane
per epic, one column per activity (feature) holding its touchpoint labels,
story cards and the supporting needs flattened from those stories.
"""

from dataclasses import dataclass, field
from typing import Optional

from storymapper.models import PRIORITY_RANK, StoryMap, SupportingRequirement, UserStory
from storymapper.touchpoints import infer_touchpoint

PALETTE = (
    "#3B82F6",  # blue
    "#10B981",  # emerald
    "#F59E0B",  # amber
    "#EF4444",  # red
    "#8B5CF6",  # violet
    "#EC4899",  # pink
    "#14B8A6",  # teal
    "#F97316",  # orange
    "#6366F1",  # indigo
    "#84CC16",  # lime
    "#06B6D4",  # cyan
    "#A855F7",  # purple
)

# Stride between activities; keeps neighbouring stories in one activity distinct
ACTIVITY_STRIDE = 3


def _string_hash(value: str) -> int:
    """Deterministic 32-bit string hash (h = h * 31 + code point, wrapped)."""
    h = 0
    for char in value:
        h = (h * 31 + ord(char)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def lane_color(entity_id: str, activity_index: Optional[int] = None,
               story_index: Optional[int] = None) -> str:
    """Pick a palette color, by position when known, else by id hash."""
    if activity_index is not None and story_index is not None:
        return PALETTE[(activity_index * ACTIVITY_STRIDE + story_index) % len(PALETTE)]
    return PALETTE[abs(_string_hash(entity_id)) % len(PALETTE)]


@dataclass
class StoryCard:
    task: UserStory
    color: str
    touchpoint: str


@dataclass
class SupportingNeedCard:
    requirement: SupportingRequirement
    task_id: str
    task_title: str
    color: str


@dataclass
class ActivityColumn:
    feature_id: str
    title: str
    index: int
    touchpoints: list[str] = field(default_factory=list)
    stories: list[StoryCard] = field(default_factory=list)
    supporting_needs: list[SupportingNeedCard] = field(default_factory=list)


@dataclass
class EpicLane:
    epic_id: str
    title: str
    activities: list[ActivityColumn] = field(default_factory=list)


@dataclass
class RenderModel:
    story_map_id: str
    title: str
    lanes: list[EpicLane] = field(default_factory=list)


def priority_sorted(items: list, key=lambda item: item.priority) -> list:
    """Stable sort, high priority first."""
    return sorted(items, key=lambda item: -PRIORITY_RANK.get(key(item), 0))


def project_layout(story_map: StoryMap, sort_by_priority: bool = False) -> RenderModel:
    """Project a story map into lanes and activity columns.

    Colors are assigned from the document order, before any priority
    sorting, so a story keeps its color whether or not sorting is on.
    """
    model = RenderModel(story_map_id=story_map.id, title=story_map.title)
    activity_index = 0

    for epic in story_map.epics:
        lane = EpicLane(epic_id=epic.id, title=epic.title)
        for feature in epic.features:
            column = ActivityColumn(feature_id=feature.id, title=feature.title, index=activity_index)
            for story_index, task in enumerate(feature.tasks):
                color = lane_color(task.id, activity_index, story_index)
                label = infer_touchpoint(task)
                if label not in column.touchpoints:
                    column.touchpoints.append(label)
                column.stories.append(StoryCard(task=task, color=color, touchpoint=label))
                for requirement in task.supporting_requirements:
                    column.supporting_needs.append(SupportingNeedCard(
                        requirement=requirement,
                        task_id=task.id,
                        task_title=task.title,
                        color=color,
                    ))

            if sort_by_priority:
                column.stories = priority_sorted(column.stories, key=lambda card: card.task.priority)
                column.supporting_needs = priority_sorted(
                    column.supporting_needs, key=lambda card: card.requirement.priority
                )

            lane.activities.append(column)
            activity_index += 1
        model.lanes.append(lane)

    return model


def find_supporting_needs(model: RenderModel, task_id: str) -> list[SupportingNeedCard]:
    """Return every supporting need card produced by a task."""
    return [
        need
        for lane in model.lanes
        for column in lane.activities
        for need in column.supporting_needs
        if need.task_id == task_id
    ]
