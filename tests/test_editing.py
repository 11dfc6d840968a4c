"""Tests for storymapper.editing module."""

import pytest

from storymapper.editing import (
    add_epic,
    add_feature,
    add_story,
    delete_element,
    locate,
    set_priority,
    update_element,
)
from storymapper.errors import ElementNotFound, StoryMapError
from storymapper.lib.validate import validate
from storymapper.normalizer import normalize_to_document


def _doc():
    return normalize_to_document({
        "title": "EV Charging",
        "description": "Charge an EV at home",
        "epics": [
            {
                "title": "Setup",
                "features": [
                    {"title": "Pair", "tasks": [{"title": "Scan QR", "priority": "high"}, {"title": "Name charger"}]},
                    {"title": "Configure", "tasks": [{"title": "Set tariff", "priority": "low"}]},
                ],
            },
            {"title": "Charging", "features": [{"title": "Start", "tasks": [{"title": "Start session"}]}]},
        ],
    })


class TestLocate:
    """Tests for locate."""

    def test_finds_every_level(self):
        doc = _doc()
        epic = doc.epics[1]
        feature = doc.epics[0].features[1]
        task = doc.epics[0].features[0].tasks[1]

        assert locate(doc, epic.id) == ("epic", doc.epics, 1)
        assert locate(doc, feature.id) == ("feature", doc.epics[0].features, 1)
        assert locate(doc, task.id) == ("task", doc.epics[0].features[0].tasks, 1)

    def test_missing(self):
        with pytest.raises(ElementNotFound) as exc_info:
            locate(_doc(), "nope")
        assert "'nope'" in str(exc_info.value)

    def test_not_found_is_a_storymap_error(self):
        assert issubclass(ElementNotFound, StoryMapError)


class TestAdd:
    """Tests for add_epic, add_feature and add_story."""

    def test_add_epic(self):
        doc = _doc()
        result = add_epic(doc, "Maintenance", "Keep chargers healthy")
        epic = result.epics[-1]
        assert epic.title == "Maintenance"
        assert epic.description == "Keep chargers healthy"
        assert epic.features == []
        assert epic.order == 2
        assert epic.id not in [e.id for e in doc.epics]

    def test_blank_titles_get_placeholders(self):
        doc = _doc()
        assert add_epic(doc, "  ").epics[-1].title == "Untitled Epic"
        feature = add_feature(doc, doc.epics[0].id, "").epics[0].features[-1]
        assert feature.title == "Untitled Feature"

    def test_add_feature(self):
        doc = _doc()
        result = add_feature(doc, doc.epics[1].id, "Stop")
        features = result.epics[1].features
        assert [f.title for f in features] == ["Start", "Stop"]
        assert [f.order for f in features] == [0, 1]

    def test_add_feature_to_task_refused(self):
        doc = _doc()
        task_id = doc.epics[0].features[0].tasks[0].id
        with pytest.raises(ElementNotFound) as exc_info:
            add_feature(doc, task_id, "Nope")
        assert "Expected epic id" in str(exc_info.value)

    def test_add_story_gets_defaults(self):
        doc = _doc()
        result = add_story(doc, doc.epics[1].features[0].id, "Stop session", priority="high")
        task = result.epics[1].features[0].tasks[-1]
        assert task.title == "Stop session"
        assert task.priority == "high"
        assert task.status == "todo"
        assert task.estimated_effort == "2 days"
        assert task.acceptance_criteria == ["Acceptance criteria not specified"]

    def test_add_story_bad_priority(self):
        doc = _doc()
        with pytest.raises(ValueError):
            add_story(doc, doc.epics[1].features[0].id, "x", priority="urgent")

    def test_result_is_valid(self):
        doc = _doc()
        result = add_epic(doc, "Maintenance")
        result = add_feature(result, result.epics[-1].id, "Visits")
        result = add_story(result, result.epics[-1].features[0].id, "Book visit")
        validate(result.to_dict(), "story_map")


class TestUpdate:
    """Tests for update_element."""

    def test_rename_feature(self):
        doc = _doc()
        feature_id = doc.epics[0].features[0].id
        result = update_element(doc, feature_id, title="Pairing", description="Link the charger")
        feature = result.epics[0].features[0]
        assert feature.id == feature_id
        assert feature.title == "Pairing"
        assert feature.description == "Link the charger"

    def test_blank_title_ignored(self):
        doc = _doc()
        result = update_element(doc, doc.epics[0].id, title="   ")
        assert result.epics[0].title == "Setup"

    def test_task_timestamp_refreshed(self):
        doc = _doc()
        task = doc.epics[0].features[0].tasks[0]
        task.updated_at = "2020-01-01T00:00:00.000Z"
        result = update_element(doc, task.id, description="Use the camera")
        assert result.epics[0].features[0].tasks[0].updated_at != "2020-01-01T00:00:00.000Z"


class TestDelete:
    """Tests for delete_element."""

    def test_delete_epic_renumbers(self):
        doc = _doc()
        result = delete_element(doc, doc.epics[0].id)
        assert [e.title for e in result.epics] == ["Charging"]
        assert result.epics[0].order == 0

    def test_delete_task(self):
        doc = _doc()
        task_id = doc.epics[0].features[0].tasks[0].id
        result = delete_element(doc, task_id)
        assert [t.title for t in result.epics[0].features[0].tasks] == ["Name charger"]

    def test_delete_missing(self):
        with pytest.raises(ElementNotFound):
            delete_element(_doc(), "nope")


class TestSetPriority:
    """Tests for set_priority."""

    def test_changes_only_that_task(self):
        doc = _doc()
        target = doc.epics[0].features[0].tasks[1]
        result = set_priority(doc, target.id, "low")
        priorities = [t.priority for _, _, t in result.iter_tasks()]
        assert priorities == ["high", "low", "low", "medium"]

    def test_invalid_priority(self):
        doc = _doc()
        with pytest.raises(ValueError) as exc_info:
            set_priority(doc, doc.epics[0].features[0].tasks[0].id, "urgent")
        assert "urgent" in str(exc_info.value)

    def test_feature_id_refused(self):
        doc = _doc()
        with pytest.raises(ElementNotFound):
            set_priority(doc, doc.epics[0].features[0].id, "high")


class TestPurity:
    """Edits never modify their input."""

    def test_input_unchanged(self):
        doc = _doc()
        before = doc.to_dict()
        epic_id = doc.epics[0].id
        feature_id = doc.epics[0].features[0].id
        task_id = doc.epics[0].features[0].tasks[0].id

        add_epic(doc, "x")
        add_feature(doc, epic_id, "x")
        add_story(doc, feature_id, "x")
        update_element(doc, task_id, title="x")
        delete_element(doc, epic_id)
        set_priority(doc, task_id, "low")

        assert doc.to_dict() == before

    def test_document_timestamp_refreshed(self):
        doc = _doc()
        doc.updated_at = "2020-01-01T00:00:00.000Z"
        assert add_epic(doc, "x").updated_at != "2020-01-01T00:00:00.000Z"
