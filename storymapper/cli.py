#!/usr/bin/env python3
"""storymap CLI entrypoint."""

import sys
import argparse
import logging
from pathlib import Path

from storymapper.errors import StoryMapError
from storymapper.lib.config import StoryMapperConfig, load_config
from storymapper.lib.validate import ValidationError
from storymapper.store import DocumentStore
from storymapper.commands import generate as cmd_generate_module
from storymapper.commands import show as cmd_show_module
from storymapper.commands import export as cmd_export_module
from storymapper.commands import list as cmd_list_module
from storymapper.commands import data as cmd_data_module
from storymapper.commands import edit as cmd_edit_module

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def get_context(args) -> tuple[StoryMapperConfig, DocumentStore]:
    """Load config from --config (or default location) and open the store."""
    try:
        config = load_config(Path(args.config) if args.config else None)
    except ValidationError as e:
        print(f"ERROR: {e}")
        sys.exit(2)

    level = logging.DEBUG if args.verbose else getattr(logging, config.log_level, logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)

    if args.store:
        config.store_dir = args.store
    return config, DocumentStore(config.store_path, max_maps=config.max_stored_maps)


def cmd_generate(args):
    config, store = get_context(args)
    return cmd_generate_module.cmd_generate(args, config, store)


def cmd_feedback(args):
    config, store = get_context(args)
    return cmd_generate_module.cmd_feedback(args, config, store)


def cmd_show(args):
    config, store = get_context(args)
    return cmd_show_module.cmd_show(args, config, store)


def cmd_export(args):
    config, store = get_context(args)
    return cmd_export_module.cmd_export(args, config, store)


def cmd_list(args):
    config, store = get_context(args)
    return cmd_list_module.cmd_list(args, config, store)


def cmd_delete(args):
    config, store = get_context(args)
    return cmd_list_module.cmd_delete(args, config, store)


def cmd_import(args):
    config, store = get_context(args)
    return cmd_data_module.cmd_import(args, config, store)


def cmd_migrate(args):
    config, store = get_context(args)
    return cmd_data_module.cmd_migrate(args, config, store)


def cmd_edit_add_epic(args):
    config, store = get_context(args)
    return cmd_edit_module.cmd_edit_add_epic(args, config, store)


def cmd_edit_add_feature(args):
    config, store = get_context(args)
    return cmd_edit_module.cmd_edit_add_feature(args, config, store)


def cmd_edit_add_story(args):
    config, store = get_context(args)
    return cmd_edit_module.cmd_edit_add_story(args, config, store)


def cmd_edit_update(args):
    config, store = get_context(args)
    return cmd_edit_module.cmd_edit_update(args, config, store)


def cmd_edit_delete(args):
    config, store = get_context(args)
    return cmd_edit_module.cmd_edit_delete(args, config, store)


def cmd_edit_priority(args):
    config, store = get_context(args)
    return cmd_edit_module.cmd_edit_priority(args, config, store)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='storymap', description='Story map generator')
    parser.add_argument('--config', '-c', help='Path to storymapper.yaml')
    parser.add_argument('--store', '-s', help='Store directory (overrides store_dir)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # storymap generate
    p_generate = subparsers.add_parser('generate', help='Generate a story map from a product description')
    p_generate.add_argument('description', nargs='*', help='Product description')
    p_generate.add_argument('--file', '-f', help='Read the description from a file')
    p_generate.set_defaults(func=cmd_generate)

    # storymap feedback
    p_feedback = subparsers.add_parser('feedback', help='Refine a story map with free-text feedback')
    p_feedback.add_argument('text', nargs='+', help='Feedback text')
    p_feedback.add_argument('--id', help='Story map ID (uses current if not specified)')
    p_feedback.set_defaults(func=cmd_feedback)

    # storymap show
    p_show = subparsers.add_parser('show', help='Show story map layout')
    p_show.add_argument('id', nargs='?', help='Story map ID (uses current if not specified)')
    p_show.add_argument('--sort', action='store_true', help='Sort stories by priority')
    p_show.set_defaults(func=cmd_show)

    # storymap export
    p_export = subparsers.add_parser('export', help='Export a story map as Markdown')
    p_export.add_argument('id', nargs='?', help='Story map ID (uses current if not specified)')
    p_export.add_argument('--output', '-o', help='Output file or directory (prints if omitted)')
    p_export.add_argument('--all', action='store_true', help='Export every story map as JSON')
    p_export.set_defaults(func=cmd_export)

    # storymap list
    p_list = subparsers.add_parser('list', help='List recent story maps')
    p_list.add_argument('--count', '-n', type=int, help='How many to show (default: recent_count)')
    p_list.set_defaults(func=cmd_list)

    # storymap delete
    p_delete = subparsers.add_parser('delete', help='Delete a story map')
    p_delete.add_argument('id', help='Story map ID')
    p_delete.set_defaults(func=cmd_delete)

    # storymap import
    p_import = subparsers.add_parser('import', help='Replace stored story maps with a JSON export')
    p_import.add_argument('path', help='JSON file from "storymap export --all"')
    p_import.set_defaults(func=cmd_import)

    # storymap migrate
    p_migrate = subparsers.add_parser('migrate', help='Import legacy story map files')
    p_migrate.set_defaults(func=cmd_migrate)

    # storymap edit
    p_edit = subparsers.add_parser('edit', help='Edit a story map by hand (ids from "storymap show")')
    p_edit.add_argument('--id', help='Story map ID (uses current if not specified)')
    edit_sub = p_edit.add_subparsers(dest='edit_cmd', required=True)

    # storymap edit add-epic
    p_add_epic = edit_sub.add_parser('add-epic', help='Append a phase')
    p_add_epic.add_argument('title', help='Phase title')
    p_add_epic.add_argument('--description', '-d', help='Phase description')
    p_add_epic.set_defaults(func=cmd_edit_add_epic)

    # storymap edit add-feature
    p_add_feature = edit_sub.add_parser('add-feature', help='Append an activity to a phase')
    p_add_feature.add_argument('epic_id', help='Phase ID')
    p_add_feature.add_argument('title', help='Activity title')
    p_add_feature.add_argument('--description', '-d', help='Activity description')
    p_add_feature.set_defaults(func=cmd_edit_add_feature)

    # storymap edit add-story
    p_add_story = edit_sub.add_parser('add-story', help='Append a user story to an activity')
    p_add_story.add_argument('feature_id', help='Activity ID')
    p_add_story.add_argument('title', help='User story title')
    p_add_story.add_argument('--description', '-d', help='User story description')
    p_add_story.add_argument('--priority', '-p', choices=['high', 'medium', 'low'], default='medium')
    p_add_story.set_defaults(func=cmd_edit_add_story)

    # storymap edit update
    p_update = edit_sub.add_parser('update', help='Change the title or description of any element')
    p_update.add_argument('element_id', help='Phase, activity or user story ID')
    p_update.add_argument('--title', '-t', help='New title')
    p_update.add_argument('--description', '-d', help='New description')
    p_update.set_defaults(func=cmd_edit_update)

    # storymap edit delete
    p_remove = edit_sub.add_parser('delete', help='Delete an element and everything beneath it')
    p_remove.add_argument('element_id', help='Phase, activity or user story ID')
    p_remove.set_defaults(func=cmd_edit_delete)

    # storymap edit priority
    p_priority = edit_sub.add_parser('priority', help="Set a user story's priority")
    p_priority.add_argument('task_id', help='User story ID')
    p_priority.add_argument('priority', choices=['high', 'medium', 'low'])
    p_priority.set_defaults(func=cmd_edit_priority)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except StoryMapError as e:
        print(f"ERROR: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
