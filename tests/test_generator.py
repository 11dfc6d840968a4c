"""Tests for storymapper.generator module."""

import json
from unittest.mock import patch

import pytest

from storymapper.errors import GeneratorUnavailable, MalformedGenerationResult
from storymapper.generator import (
    ClaudeGenerator,
    TemplateGenerator,
    build_generator,
    parse_generation_output,
)
from storymapper.lib.config import StoryMapperConfig
from storymapper.normalizer import normalize_to_document

RAW = {
    "title": "Pet Store",
    "description": "Buy food for pets",
    "epics": [{"title": "Shopping", "features": [{"title": "Browse", "tasks": [{"title": "View food"}]}]}],
}


class TestParseGenerationOutput:
    """Tests for parse_generation_output."""

    def test_plain_json(self):
        assert parse_generation_output(json.dumps(RAW)) == RAW

    def test_fenced_json(self):
        text = "```json\n" + json.dumps(RAW) + "\n```"
        assert parse_generation_output(text) == RAW

    def test_json_embedded_in_prose(self):
        text = "Here is your story map:\n" + json.dumps(RAW) + "\nLet me know!"
        assert parse_generation_output(text) == RAW

    def test_yaml(self):
        text = (
            "title: Pet Store\n"
            "description: Buy food for pets\n"
            "epics:\n"
            "  - title: Shopping\n"
            "    features: []\n"
        )
        data = parse_generation_output(text)
        assert data["title"] == "Pet Store"
        assert data["epics"][0]["title"] == "Shopping"

    @pytest.mark.parametrize("text", ["", "   ", "just some words", "[1, 2, 3]"])
    def test_unreadable_raises(self, text):
        with pytest.raises(MalformedGenerationResult):
            parse_generation_output(text)


class TestClaudeGenerator:
    """Tests for the CLI-backed generator."""

    @patch("storymapper.generator.run_claude")
    def test_generate_sends_description(self, mock_run):
        mock_run.return_value = (True, json.dumps(RAW))
        gen = ClaudeGenerator(command="claude -p", timeout=42)

        assert gen.generate("A pet food store") == RAW

        prompt = mock_run.call_args[0][0]
        assert "A pet food store" in prompt
        assert "<!--" not in prompt
        assert "in English" in prompt
        assert mock_run.call_args[1] == {"command": "claude -p", "timeout": 42}

    @patch("storymapper.generator.run_claude")
    def test_failure_raises_unavailable(self, mock_run):
        mock_run.return_value = (False, "claude CLI not found")
        with pytest.raises(GeneratorUnavailable) as exc_info:
            ClaudeGenerator().generate("A pet food store")
        assert "not found" in str(exc_info.value)

    @patch("storymapper.generator.run_claude")
    def test_garbage_raises_malformed(self, mock_run):
        mock_run.return_value = (True, "I cannot help with that")
        with pytest.raises(MalformedGenerationResult):
            ClaudeGenerator().generate("A pet food store")

    @patch("storymapper.generator.run_claude")
    def test_feedback_prompt_carries_map_and_feedback(self, mock_run):
        mock_run.return_value = (True, json.dumps(RAW))
        current = normalize_to_document({**RAW, "title": "宠物商店"})

        ClaudeGenerator().generate_with_feedback(current, "增加会员功能")

        prompt = mock_run.call_args[0][0]
        assert "增加会员功能" in prompt
        assert "宠物商店" in prompt
        assert '"acceptance_criteria"' in prompt
        assert "Simplified Chinese" in prompt


class TestTemplateGenerator:
    """Tests for the offline generator."""

    def test_domain_match(self):
        raw = TemplateGenerator().generate("智能充电桩管理")
        story_map = normalize_to_document(raw)
        assert story_map.epics

    def test_generic_fallback_keeps_description(self):
        raw = TemplateGenerator().generate("A poetry journal")
        assert "A poetry journal" in raw["description"]
        normalize_to_document(raw)

    def test_feedback_not_supported(self):
        current = normalize_to_document(RAW)
        with pytest.raises(GeneratorUnavailable):
            TemplateGenerator().generate_with_feedback(current, "add search")


class TestBuildGenerator:
    """Tests for build_generator."""

    def test_claude(self):
        config = StoryMapperConfig(generator="claude", generator_command="mycli -p", generator_timeout=10)
        gen = build_generator(config)
        assert isinstance(gen, ClaudeGenerator)
        assert gen.command == "mycli -p"
        assert gen.timeout == 10

    def test_template(self):
        assert isinstance(build_generator(StoryMapperConfig(generator="template")), TemplateGenerator)

    def test_unknown(self):
        with pytest.raises(ValueError) as exc_info:
            build_generator(StoryMapperConfig(generator="gpt"))
        assert "Unknown generator 'gpt'" in str(exc_info.value)
