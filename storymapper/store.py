"""
Document store for story maps.

Documents are stored as one JSON file each, plus an index:
  <root>/maps/<id>.json
  <root>/index.json     {"maps": [ids, newest first], "currentMapId": ..., "lastUpdated": ...}

Every write replaces the whole document (last writer wins). Filesystem
failures are raised as StoreUnavailable.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from storymapper.errors import StoreUnavailable
from storymapper.lib.validate import validate_before_write, validation_errors
from storymapper.models import StoryMap, now_iso

logger = logging.getLogger(__name__)

MAX_STORED_MAPS = 50

LEGACY_MAPS_FILE = "user_story_maps.json"
LEGACY_CURRENT_FILE = "current_story_map.json"


def _empty_index() -> dict:
    return {"maps": [], "currentMapId": None, "lastUpdated": now_iso()}


def _parse_documents(items) -> list[StoryMap]:
    """Keep the entries that are valid stored documents, in order, without duplicates."""
    documents = []
    seen = set()
    for item in items:
        errors = validation_errors(item, "story_map")
        if errors:
            label = (item.get("id") or item.get("title")) if isinstance(item, dict) else None
            logger.warning(f"Skipping invalid story map {label!r}: {errors[0]}")
            continue
        if item["id"] in seen:
            continue
        seen.add(item["id"])
        documents.append(StoryMap.from_dict(item))
    return documents


class DocumentStore:
    """Key-value store of story maps keyed by document id."""

    def __init__(self, root: Path, max_maps: int = MAX_STORED_MAPS):
        self.root = Path(root)
        self.max_maps = max_maps

    @property
    def maps_dir(self) -> Path:
        return self.root / "maps"

    @property
    def index_path(self) -> Path:
        return self.root / "index.json"

    def _map_path(self, map_id: str) -> Path:
        return self.maps_dir / f"{map_id}.json"

    def _read_index(self) -> dict:
        if not self.index_path.exists():
            return _empty_index()
        try:
            data = json.loads(self.index_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.warning(f"Corrupt store index {self.index_path}, starting empty: {e}")
            return _empty_index()
        except OSError as e:
            raise StoreUnavailable(f"Cannot read {self.index_path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("maps"), list):
            logger.warning(f"Store index {self.index_path} has unexpected shape, starting empty")
            return _empty_index()
        data.setdefault("currentMapId", None)
        return data

    def _write_index(self, index: dict) -> None:
        index["lastUpdated"] = now_iso()
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            self.index_path.write_text(json.dumps(index, indent=2), encoding="utf-8")
        except OSError as e:
            raise StoreUnavailable(f"Cannot write {self.index_path}: {e}") from e

    def _write_document(self, story_map: StoryMap) -> None:
        path = self._map_path(story_map.id)
        data = story_map.to_dict()
        validate_before_write(data, "story_map", path)
        try:
            self.maps_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as e:
            raise StoreUnavailable(f"Cannot write {path}: {e}") from e

    def _remove_document(self, map_id: str) -> None:
        try:
            self._map_path(map_id).unlink(missing_ok=True)
        except OSError as e:
            raise StoreUnavailable(f"Cannot remove {self._map_path(map_id)}: {e}") from e

    def _trim(self, index: dict) -> None:
        for map_id in index["maps"][self.max_maps:]:
            logger.info(f"Dropping story map {map_id} (store keeps {self.max_maps})")
            self._remove_document(map_id)
        index["maps"] = index["maps"][:self.max_maps]
        if index.get("currentMapId") not in index["maps"]:
            index["currentMapId"] = None

    def ids(self) -> list[str]:
        """Return stored document ids, newest first."""
        return list(self._read_index()["maps"])

    def get(self, map_id: str) -> Optional[StoryMap]:
        """Load a story map by id, or None if it is not stored."""
        path = self._map_path(map_id)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to load story map {map_id}: {e}")
            return None
        except OSError as e:
            raise StoreUnavailable(f"Cannot read {path}: {e}") from e
        return StoryMap.from_dict(data)

    def put(self, story_map: StoryMap) -> None:
        """Store a story map, replacing any document with the same id.

        The id moves to the front of the recent list.

        Raises:
            ValidationError: If the document does not match the schema
            StoreUnavailable: If the filesystem write fails
        """
        self._write_document(story_map)
        index = self._read_index()
        index["maps"] = [story_map.id] + [m for m in index["maps"] if m != story_map.id]
        self._trim(index)
        self._write_index(index)
        logger.debug(f"Stored story map {story_map.id} '{story_map.title}'")

    def delete(self, map_id: str) -> bool:
        """Delete a story map. Returns False if it was not stored."""
        index = self._read_index()
        existed = map_id in index["maps"] or self._map_path(map_id).exists()
        self._remove_document(map_id)
        index["maps"] = [m for m in index["maps"] if m != map_id]
        if index.get("currentMapId") == map_id:
            index["currentMapId"] = None
        self._write_index(index)
        if existed:
            logger.info(f"Deleted story map {map_id}")
        return existed

    def list_recent(self, count: int = 5) -> list[StoryMap]:
        """Return up to count story maps, newest first."""
        recent = []
        for map_id in self._read_index()["maps"]:
            if len(recent) >= count:
                break
            story_map = self.get(map_id)
            if story_map is not None:
                recent.append(story_map)
        return recent

    def get_current(self) -> Optional[StoryMap]:
        current_id = self._read_index().get("currentMapId")
        return self.get(current_id) if current_id else None

    def set_current(self, map_id: Optional[str]) -> None:
        index = self._read_index()
        if map_id is not None and map_id not in index["maps"]:
            raise KeyError(f"Story map not found: {map_id}")
        index["currentMapId"] = map_id
        self._write_index(index)

    def export(self) -> str:
        """Return every stored document and the current id as JSON."""
        index = self._read_index()
        maps = [m for m in (self.get(map_id) for map_id in index["maps"]) if m is not None]
        return json.dumps(
            {
                "maps": [m.to_dict() for m in maps],
                "currentMapId": index.get("currentMapId"),
            },
            indent=2,
            ensure_ascii=False,
        )

    def _replace_all(self, documents: list[StoryMap], current_id: Optional[str]) -> None:
        old_ids = set(self._read_index()["maps"])
        for story_map in documents:
            self._write_document(story_map)
        index = {
            "maps": [m.id for m in documents],
            "currentMapId": current_id,
        }
        self._trim(index)
        for map_id in old_ids - set(index["maps"]):
            self._remove_document(map_id)
        self._write_index(index)

    def import_data(self, text: str) -> bool:
        """Replace the store contents with exported data.

        Accepts the export() shape or a bare list of documents. Returns
        False, leaving the store untouched, when the text is not usable.
        """
        try:
            data = json.loads(text)
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning(f"Import failed, not valid JSON: {e}")
            return False

        if isinstance(data, list):
            items, current_id = data, None
        elif isinstance(data, dict) and isinstance(data.get("maps"), list):
            items, current_id = data["maps"], data.get("currentMapId")
        else:
            logger.warning("Import failed, expected a list of story maps or {\"maps\": [...]}")
            return False

        documents = _parse_documents(items)
        if items and not documents:
            logger.warning("Import failed, no valid story maps found")
            return False

        if current_id not in {m.id for m in documents}:
            current_id = None
        self._replace_all(documents, current_id)
        logger.info(f"Imported {len(documents)} story map(s)")
        return True

    def migrate_legacy(self) -> int:
        """Import legacy flat files into an empty store.

        Reads <root>/user_story_maps.json (a list of documents) and
        <root>/current_story_map.json (one document, placed first and made
        current). The legacy files are removed after a successful import.

        Returns:
            Number of documents migrated
        """
        if self._read_index()["maps"]:
            logger.info("Store already has story maps, skipping legacy migration")
            return 0

        items = []
        legacy_maps = self.root / LEGACY_MAPS_FILE
        legacy_current = self.root / LEGACY_CURRENT_FILE

        if legacy_maps.exists():
            try:
                data = json.loads(legacy_maps.read_text(encoding="utf-8"))
                if isinstance(data, list):
                    items.extend(data)
                else:
                    logger.warning(f"{legacy_maps} does not hold a list, ignoring")
            except json.JSONDecodeError as e:
                logger.warning(f"Failed to read {legacy_maps}: {e}")

        if legacy_current.exists():
            try:
                current = json.loads(legacy_current.read_text(encoding="utf-8"))
                if isinstance(current, dict) and not any(
                    isinstance(m, dict) and m.get("id") == current.get("id") for m in items
                ):
                    items.insert(0, current)
            except json.JSONDecodeError as e:
                logger.warning(f"Failed to read {legacy_current}: {e}")

        documents = _parse_documents(items)
        if not documents:
            return 0

        self._replace_all(documents, documents[0].id)
        for path in (legacy_maps, legacy_current):
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Failed to remove legacy file {path}: {e}")
        logger.info(f"Migrated {len(documents)} legacy story map(s)")
        return len(documents)
