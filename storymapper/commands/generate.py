"""
storymap generate / storymap feedback - Create and refine story maps.
"""

import sys
from pathlib import Path

from storymapper.errors import GenerationError
from storymapper.generator import build_generator
from storymapper.lib.config import StoryMapperConfig
from storymapper.models import StoryMap
from storymapper.session import StoryMapSession
from storymapper.store import DocumentStore


def print_summary(story_map: StoryMap):
    """Print a short overview of a story map."""
    task_count = sum(1 for _ in story_map.iter_tasks())
    feature_count = sum(len(e.features) for e in story_map.epics)
    print(f"Story map: {story_map.id}")
    print("=" * 60)
    print(f"Title:       {story_map.title}")
    print(f"Description: {story_map.description}")
    print(f"Epics: {len(story_map.epics)}  Activities: {feature_count}  Stories: {task_count}")
    for epic in story_map.epics:
        print(f"  {epic.title}")
        for feature in epic.features:
            print(f"    {feature.title} ({len(feature.tasks)} stories)")


def _read_description(args) -> str:
    if args.file:
        return Path(args.file).read_text(encoding="utf-8").strip()
    if args.description:
        return " ".join(args.description).strip()
    if not sys.stdin.isatty():
        return sys.stdin.read().strip()
    return ""


def cmd_generate(args, config: StoryMapperConfig, store: DocumentStore) -> int:
    """Generate a new story map from a product description."""
    try:
        description = _read_description(args)
    except OSError as e:
        print(f"ERROR: Cannot read {args.file}: {e}")
        return 1
    if not description:
        print("ERROR: No product description given. Pass text, --file, or pipe it on stdin.")
        return 1

    session = StoryMapSession(build_generator(config), store)
    print(f"Generating story map with '{config.generator}' generator...")
    try:
        story_map = session.generate(description)
    except GenerationError as e:
        print(f"ERROR: {e}")
        return 1

    print_summary(story_map)
    return 0


def cmd_feedback(args, config: StoryMapperConfig, store: DocumentStore) -> int:
    """Apply free-text feedback to a stored story map (current by default)."""
    feedback = " ".join(args.text).strip()
    if not feedback:
        print("ERROR: Feedback text is empty")
        return 1

    session = StoryMapSession(build_generator(config), store)
    if args.id:
        if session.load(args.id) is None:
            print(f"ERROR: Story map '{args.id}' not found")
            return 1
    elif session.load() is None:
        print("No current story map, starting a new one from feedback.")

    story_map = session.apply_feedback(feedback)
    print_summary(story_map)
    return 0
