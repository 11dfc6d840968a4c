"""Tests for storymapper.lib.validate module."""

import pytest

from storymapper.lib.validate import (
    ValidationError,
    validate,
    validation_errors,
    validate_before_write,
)
from storymapper.normalizer import normalize_to_document


def _doc_dict():
    return normalize_to_document({
        "title": "Pet Store",
        "description": "Buy food for pets",
        "epics": [{"title": "Shopping", "features": [{"title": "Browse", "tasks": [{"title": "View food"}]}]}],
    }).to_dict()


class TestValidate:
    """Tests for validate and validation_errors."""

    def test_normalized_document_is_valid(self):
        validate(_doc_dict(), "story_map")

    def test_missing_field_reports_path(self):
        data = _doc_dict()
        del data["epics"][0]["features"][0]["tasks"][0]["priority"]
        with pytest.raises(ValidationError) as exc_info:
            validate(data, "story_map")
        assert exc_info.value.schema_name == "story_map"
        assert exc_info.value.path == "epics.0.features.0.tasks.0"

    def test_bad_enum(self):
        data = _doc_dict()
        data["epics"][0]["features"][0]["tasks"][0]["status"] = "blocked"
        errors = validation_errors(data, "story_map")
        assert len(errors) == 1
        assert errors[0].startswith("epics.0.features.0.tasks.0.status: ")

    def test_root_path(self):
        with pytest.raises(ValidationError) as exc_info:
            validate({"title": "x"}, "story_map")
        assert exc_info.value.path == "(root)"

    def test_unknown_schema(self):
        with pytest.raises(ValidationError) as exc_info:
            validate({}, "nope")
        assert "Schema file not found" in str(exc_info.value)

    def test_non_dict_invalid(self):
        errors = validation_errors(["not", "a", "map"], "story_map")
        assert len(errors) == 1
        assert errors[0].startswith("(root): ")
        assert "is not of type 'object'" in errors[0]


class TestValidateBeforeWrite:
    """Tests for validate_before_write."""

    def test_message_names_file(self, tmp_path):
        target = tmp_path / "maps" / "x.json"
        with pytest.raises(ValidationError) as exc_info:
            validate_before_write({"title": "x"}, "story_map", target)
        assert "Refusing to write invalid data" in str(exc_info.value)
        assert str(target) in str(exc_info.value)

    def test_valid_passes(self, tmp_path):
        validate_before_write(_doc_dict(), "story_map", tmp_path / "x.json")
