"""
storymap export - Export a story map as Markdown, or the whole store as JSON.
"""

from pathlib import Path

from storymapper.lib.config import StoryMapperConfig
from storymapper.markdown import export_filename, to_markdown, write_markdown
from storymapper.store import DocumentStore


def cmd_export(args, config: StoryMapperConfig, store: DocumentStore) -> int:
    """Export one story map as Markdown, or every story map with --all."""
    if args.all:
        content = store.export()
        if args.output:
            Path(args.output).write_text(content, encoding="utf-8")
            print(f"Exported store to {args.output}")
        else:
            print(content)
        return 0

    story_map = store.get(args.id) if args.id else store.get_current()
    if story_map is None:
        target = f"'{args.id}'" if args.id else "current story map"
        print(f"ERROR: {target} not found")
        return 1

    if args.output is None:
        print(to_markdown(story_map))
        return 0

    output = Path(args.output)
    if output.is_dir():
        output = output / export_filename(story_map)
    write_markdown(output, story_map)
    print(f"Exported '{story_map.title}' to {output}")
    return 0
