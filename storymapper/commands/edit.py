"""
storymap edit - Change a stored story map by hand.

Element ids are shown by `storymap show`.
"""

from storymapper import editing
from storymapper.lib.config import StoryMapperConfig
from storymapper.store import DocumentStore


def _load(args, store: DocumentStore):
    story_map = store.get(args.id) if args.id else store.get_current()
    if story_map is None:
        target = f"'{args.id}'" if args.id else "current story map"
        print(f"ERROR: {target} not found")
    return story_map


def _save(store: DocumentStore, story_map, message: str) -> int:
    store.put(story_map)
    print(message)
    return 0


def cmd_edit_add_epic(args, config: StoryMapperConfig, store: DocumentStore) -> int:
    """Append a phase."""
    story_map = _load(args, store)
    if story_map is None:
        return 1
    result = editing.add_epic(story_map, args.title, args.description or "")
    epic = result.epics[-1]
    return _save(store, result, f"Added phase {epic.id}: {epic.title}")


def cmd_edit_add_feature(args, config: StoryMapperConfig, store: DocumentStore) -> int:
    """Append an activity to a phase."""
    story_map = _load(args, store)
    if story_map is None:
        return 1
    result = editing.add_feature(story_map, args.epic_id, args.title, args.description or "")
    _, epics, index = editing.locate(result, args.epic_id)
    feature = epics[index].features[-1]
    return _save(store, result, f"Added activity {feature.id}: {feature.title}")


def cmd_edit_add_story(args, config: StoryMapperConfig, store: DocumentStore) -> int:
    """Append a user story to an activity."""
    story_map = _load(args, store)
    if story_map is None:
        return 1
    result = editing.add_story(
        story_map, args.feature_id, args.title, args.description or "", args.priority
    )
    _, features, index = editing.locate(result, args.feature_id)
    task = features[index].tasks[-1]
    return _save(store, result, f"Added user story {task.id}: {task.title} [{task.priority}]")


def cmd_edit_update(args, config: StoryMapperConfig, store: DocumentStore) -> int:
    """Change an element's title or description."""
    if args.title is None and args.description is None:
        print("ERROR: Nothing to change (use --title and/or --description)")
        return 1
    story_map = _load(args, store)
    if story_map is None:
        return 1
    result = editing.update_element(story_map, args.element_id, args.title, args.description)
    return _save(store, result, f"Updated {args.element_id}")


def cmd_edit_delete(args, config: StoryMapperConfig, store: DocumentStore) -> int:
    """Delete an element and everything beneath it."""
    story_map = _load(args, store)
    if story_map is None:
        return 1
    result = editing.delete_element(story_map, args.element_id)
    return _save(store, result, f"Deleted {args.element_id}")


def cmd_edit_priority(args, config: StoryMapperConfig, store: DocumentStore) -> int:
    """Set a user story's priority."""
    story_map = _load(args, store)
    if story_map is None:
        return 1
    result = editing.set_priority(story_map, args.task_id, args.priority)
    return _save(store, result, f"Set priority of {args.task_id} to {args.priority}")
