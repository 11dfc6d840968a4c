"""Tests for the storymap CLI."""

import json
from unittest.mock import patch

import pytest

from storymapper.cli import build_parser, main
from storymapper.errors import GeneratorUnavailable
from storymapper.store import DocumentStore


@pytest.fixture
def env(tmp_path):
    """Config using the offline generator plus an empty store directory."""
    config = tmp_path / "storymapper.yaml"
    config.write_text("generator: template\n")
    store_dir = tmp_path / "store"
    base = ["--config", str(config), "--store", str(store_dir)]
    return base, DocumentStore(store_dir)


def run(base, *args):
    return main(base + list(args))


class TestParser:
    """Tests for argument parsing."""

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_generate_joins_words(self):
        args = build_parser().parse_args(["generate", "a", "charging", "app"])
        assert args.description == ["a", "charging", "app"]


class TestGenerate:
    """Tests for storymap generate."""

    def test_generate_stores_current(self, env, capsys):
        base, store = env
        assert run(base, "generate", "充电桩", "App") == 0
        out = capsys.readouterr().out
        assert "智能充电桩管理平台" in out
        current = store.get_current()
        assert current is not None
        assert current.id in out

    def test_generate_from_file(self, env, tmp_path, capsys):
        base, store = env
        path = tmp_path / "desc.txt"
        path.write_text("A poetry journal\n")
        assert run(base, "generate", "--file", str(path)) == 0
        assert store.get_current().description == "A poetry journal"

    def test_generate_without_description(self, env, capsys):
        base, _ = env
        with patch("sys.stdin") as stdin:
            stdin.isatty.return_value = True
            assert run(base, "generate") == 1
        assert "No product description" in capsys.readouterr().out

    def test_generator_failure(self, env, capsys):
        base, store = env
        with patch(
            "storymapper.generator.TemplateGenerator.generate",
            side_effect=GeneratorUnavailable("offline"),
        ):
            assert run(base, "generate", "anything") == 1
        assert "ERROR: offline" in capsys.readouterr().out
        assert store.ids() == []

    def test_invalid_config_exits(self, tmp_path, capsys):
        config = tmp_path / "storymapper.yaml"
        config.write_text("generator: gpt\n")
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(config), "list"])
        assert exc_info.value.code == 2
        assert "ERROR:" in capsys.readouterr().out


class TestFeedback:
    """Tests for storymap feedback."""

    def test_feedback_on_current(self, env, capsys):
        base, store = env
        run(base, "generate", "充电桩")
        original = store.get_current()

        assert run(base, "feedback", "增加设备管理") == 0

        updated = store.get_current()
        assert updated.id == original.id
        assert updated.epics[-1].title == "设备管理"

    def test_feedback_without_current_starts_new(self, env, capsys):
        base, store = env
        assert run(base, "feedback", "删除所有支撑性需求") == 0
        assert "starting a new one" in capsys.readouterr().out
        assert store.get_current() is not None

    def test_feedback_unknown_id(self, env, capsys):
        base, _ = env
        assert run(base, "feedback", "--id", "nope", "add search") == 1
        assert "'nope' not found" in capsys.readouterr().out


class TestShowAndExport:
    """Tests for storymap show and storymap export."""

    def test_show(self, env, capsys):
        base, _ = env
        run(base, "generate", "充电桩")
        capsys.readouterr()
        assert run(base, "show", "--sort") == 0
        out = capsys.readouterr().out
        assert "设备接入" in out
        assert "Touchpoints" in out

    def test_show_missing(self, env, capsys):
        base, _ = env
        assert run(base, "show") == 1
        assert "current story map not found" in capsys.readouterr().out

    def test_export_markdown_to_dir(self, env, tmp_path, capsys):
        base, store = env
        run(base, "generate", "A", "poetry", "journal")
        out_dir = tmp_path / "out"
        out_dir.mkdir()

        assert run(base, "export", "-o", str(out_dir)) == 0

        files = list(out_dir.glob("*-story-map.md"))
        assert len(files) == 1
        assert files[0].read_text(encoding="utf-8").startswith(f"# {store.get_current().title}\n")

    def test_export_all_and_import(self, env, tmp_path, capsys):
        base, store = env
        run(base, "generate", "充电桩")
        dump = tmp_path / "dump.json"
        assert run(base, "export", "--all", "-o", str(dump)) == 0
        assert json.loads(dump.read_text())["maps"]

        other = tmp_path / "other"
        assert main(["--config", base[1], "--store", str(other), "import", str(dump)]) == 0
        assert DocumentStore(other).ids() == store.ids()

    def test_import_bad_file(self, env, tmp_path, capsys):
        base, _ = env
        path = tmp_path / "bad.json"
        path.write_text("not json")
        assert run(base, "import", str(path)) == 1
        assert "does not contain story map data" in capsys.readouterr().out


class TestListDeleteMigrate:
    """Tests for storymap list, delete and migrate."""

    def test_list_empty(self, env, capsys):
        base, _ = env
        assert run(base, "list") == 0
        assert "Story maps: none" in capsys.readouterr().out

    def test_list_marks_current(self, env, capsys):
        base, store = env
        run(base, "generate", "充电桩")
        capsys.readouterr()
        assert run(base, "list") == 0
        out = capsys.readouterr().out
        assert f" * {store.get_current().id}" in out
        assert "1 story map(s)" in out

    def test_delete(self, env, capsys):
        base, store = env
        run(base, "generate", "充电桩")
        map_id = store.get_current().id
        assert run(base, "delete", map_id) == 0
        assert store.ids() == []
        assert run(base, "delete", map_id) == 1

    def test_migrate_nothing(self, env, capsys):
        base, _ = env
        assert run(base, "migrate") == 0
        assert "Nothing to migrate" in capsys.readouterr().out


class TestEdit:
    """Tests for storymap edit."""

    def test_add_epic_feature_and_story(self, env, capsys):
        base, store = env
        run(base, "generate", "充电桩")
        epic_count = len(store.get_current().epics)

        assert run(base, "edit", "add-epic", "Maintenance") == 0
        epic = store.get_current().epics[-1]
        assert len(store.get_current().epics) == epic_count + 1
        assert epic.title == "Maintenance"

        assert run(base, "edit", "add-feature", epic.id, "Schedule visit") == 0
        feature = store.get_current().epics[-1].features[0]
        assert feature.title == "Schedule visit"

        assert run(base, "edit", "add-story", feature.id, "Pick a slot", "-p", "high") == 0
        task = store.get_current().epics[-1].features[0].tasks[0]
        assert task.title == "Pick a slot"
        assert task.priority == "high"
        assert f"Added user story {task.id}" in capsys.readouterr().out

    def test_priority(self, env, capsys):
        base, store = env
        run(base, "generate", "充电桩")
        _, _, task = next(store.get_current().iter_tasks())
        new_priority = "low" if task.priority != "low" else "high"

        assert run(base, "edit", "priority", task.id, new_priority) == 0

        _, _, updated = next(store.get_current().iter_tasks())
        assert updated.id == task.id
        assert updated.priority == new_priority

    def test_update_and_delete(self, env, capsys):
        base, store = env
        run(base, "generate", "充电桩")
        epic = store.get_current().epics[0]

        assert run(base, "edit", "update", epic.id, "--title", "Onboarding") == 0
        assert store.get_current().epics[0].title == "Onboarding"

        assert run(base, "edit", "delete", epic.id) == 0
        assert epic.id not in [e.id for e in store.get_current().epics]

    def test_update_needs_a_field(self, env, capsys):
        base, store = env
        run(base, "generate", "充电桩")
        epic_id = store.get_current().epics[0].id
        assert run(base, "edit", "update", epic_id) == 1
        assert "Nothing to change" in capsys.readouterr().out

    def test_unknown_element(self, env, capsys):
        base, _ = env
        run(base, "generate", "充电桩")
        capsys.readouterr()
        assert run(base, "edit", "delete", "nope") == 1
        assert "ERROR: No phase, activity or user story with id 'nope'" in capsys.readouterr().out

    def test_without_story_map(self, env, capsys):
        base, _ = env
        assert run(base, "edit", "add-epic", "Anything") == 1
        assert "current story map not found" in capsys.readouterr().out

    def test_invalid_priority_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["edit", "priority", "abc", "urgent"])
