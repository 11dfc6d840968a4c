"""
Markdown export for story maps.

The output depends only on the document, so exporting the same story map
twice gives identical text.
"""

import re
from pathlib import Path

from storymapper.models import Epic, Feature, StoryMap, UserStory


def _task_markdown(task: UserStory) -> str:
    lines = [
        f"#### {task.title}",
        f"- **Description:** {task.description}",
        f"- **Priority:** {task.priority}",
        f"- **Effort:** {task.estimated_effort}",
        "- **Acceptance Criteria:**",
        "\n".join(f"  - {criterion}" for criterion in task.acceptance_criteria),
        "",
        "",
    ]
    return "\n".join(lines)


def _feature_markdown(feature: Feature) -> str:
    lines = [
        f"### {feature.title}",
        feature.description,
        "",
        "".join(_task_markdown(task) for task in feature.tasks),
    ]
    return "\n".join(lines)


def _epic_markdown(epic: Epic) -> str:
    lines = [
        f"## {epic.title}",
        epic.description,
        "",
        "".join(_feature_markdown(feature) for feature in epic.features),
    ]
    return "\n".join(lines)


def to_markdown(story_map: StoryMap) -> str:
    """Render a story map as Markdown.

    Layout: "# title", "# description", then one "##" section per epic,
    "###" per feature and "####" per task with its description, priority,
    effort and acceptance criteria bullets.
    """
    lines = [
        f"# {story_map.title}",
        f"# {story_map.description}",
        "",
        "\n".join(_epic_markdown(epic) for epic in story_map.epics),
    ]
    return "\n".join(lines)


def export_filename(story_map: StoryMap) -> str:
    """Return "<title-slug>-story-map.md" for a story map.

    The slug keeps only word characters (CJK included), so a title can
    never name a path outside the export directory.
    """
    slug = re.sub(r"[\W_]+", "-", story_map.title.strip().lower()).strip("-") or "untitled"
    return f"{slug}-story-map.md"


def write_markdown(path: Path, story_map: StoryMap) -> Path:
    """Write the Markdown export of story_map to path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(to_markdown(story_map), encoding="utf-8")
    return path
