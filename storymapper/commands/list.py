"""
storymap list / storymap delete - Browse and remove stored story maps.
"""

from storymapper.lib.config import StoryMapperConfig
from storymapper.store import DocumentStore


def cmd_list(args, config: StoryMapperConfig, store: DocumentStore) -> int:
    """List recent story maps, newest first."""
    count = args.count or config.recent_count
    story_maps = store.list_recent(count)
    if not story_maps:
        print("Story maps: none")
        print()
        print("Get started:")
        print('  storymap generate "A mobile app for booking home charging stations"')
        return 0

    current = store.get_current()
    current_id = current.id if current else None

    print("Story maps")
    print("-" * 60)
    for story_map in story_maps:
        marker = "*" if story_map.id == current_id else " "
        title = story_map.title[:36] + "..." if len(story_map.title) > 36 else story_map.title
        updated = story_map.updated_at[:16].replace("T", " ")
        print(f" {marker} {story_map.id:<10} {updated:<17} {title}")
    print()
    print(f"{len(story_maps)} story map(s)")
    return 0


def cmd_delete(args, config: StoryMapperConfig, store: DocumentStore) -> int:
    """Delete a stored story map."""
    if not store.delete(args.id):
        print(f"ERROR: Story map '{args.id}' not found")
        return 1
    print(f"Deleted story map {args.id}")
    return 0
