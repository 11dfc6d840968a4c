"""
storymap import / storymap migrate - Bring story maps into the store.
"""

from pathlib import Path

from storymapper.lib.config import StoryMapperConfig
from storymapper.store import LEGACY_CURRENT_FILE, LEGACY_MAPS_FILE, DocumentStore


def cmd_import(args, config: StoryMapperConfig, store: DocumentStore) -> int:
    """Replace the store contents with a JSON export."""
    path = Path(args.path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        print(f"ERROR: Cannot read {path}: {e}")
        return 1

    if not store.import_data(text):
        print(f"ERROR: {path} does not contain story map data")
        return 1
    print(f"Imported {len(store.ids())} story map(s) from {path}")
    return 0


def cmd_migrate(args, config: StoryMapperConfig, store: DocumentStore) -> int:
    """Import legacy story map files from the store directory."""
    count = store.migrate_legacy()
    if count == 0:
        print(f"Nothing to migrate (looked for {LEGACY_MAPS_FILE} and {LEGACY_CURRENT_FILE} in {store.root})")
        return 0
    print(f"Migrated {count} story map(s)")
    return 0
