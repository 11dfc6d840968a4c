"""
Story map generator boundary.

A generator turns a product description (or a current story map plus
feedback) into a raw, untrusted result. Every raw result must go through
storymapper.normalizer before use.

Implementations:
  - ClaudeGenerator: runs a model CLI (default: claude) with prompts/*.md
  - TemplateGenerator: offline, returns fixed domain templates
"""

import json
import logging
from typing import Any, Protocol

import yaml

from storymapper.errors import GeneratorUnavailable, MalformedGenerationResult
from storymapper.lib.claude_utils import (
    DEFAULT_COMMAND,
    extract_json_object,
    run_claude,
    strip_markdown_fences,
)
from storymapper.lib.config import VALID_GENERATORS, StoryMapperConfig
from storymapper.lib.prompts import render_prompt
from storymapper.models import StoryMap, to_yaml_form
from storymapper.templates import detect_language, generic_template, match_domain_template

logger = logging.getLogger(__name__)

RESPONSE_LANGUAGES = {"zh": "Simplified Chinese", "en": "English"}


class StoryMapGenerator(Protocol):
    """What the pipeline needs from a generator."""

    def generate(self, description: str) -> Any:
        ...

    def generate_with_feedback(self, current: StoryMap, feedback: str) -> Any:
        ...


def parse_generation_output(text: str) -> dict:
    """Parse model output into a raw story map object.

    Tries, in order: the whole text as JSON (after stripping markdown
    fences), the first {...} block as JSON, then the whole text as YAML.

    Raises:
        MalformedGenerationResult: If no strategy yields a mapping
    """
    if not text or not text.strip():
        raise MalformedGenerationResult("Empty response from generator")

    cleaned = strip_markdown_fences(text)

    try:
        data = json.loads(cleaned)
        if isinstance(data, dict):
            return data
    except json.JSONDecodeError as e:
        logger.debug(f"Direct JSON parse failed: {e}")

    block = extract_json_object(cleaned)
    if block:
        try:
            data = json.loads(block)
            if isinstance(data, dict):
                return data
        except json.JSONDecodeError as e:
            logger.debug(f"Extracted JSON parse failed: {e}")

    try:
        data = yaml.safe_load(cleaned)
        if isinstance(data, dict):
            return data
    except yaml.YAMLError as e:
        logger.debug(f"YAML parse failed: {e}")

    raise MalformedGenerationResult(
        f"No valid JSON or YAML object found in response (first 200 chars: {text[:200]!r})"
    )


class ClaudeGenerator:
    """Generator backed by a model CLI that reads its prompt from stdin."""

    def __init__(self, command: str = DEFAULT_COMMAND, timeout: int = 300):
        self.command = command
        self.timeout = timeout

    def _run(self, prompt: str) -> dict:
        success, response = run_claude(prompt, command=self.command, timeout=self.timeout)
        if not success:
            raise GeneratorUnavailable(response)
        return parse_generation_output(response)

    def generate(self, description: str) -> dict:
        logger.info(f"Generating story map ({len(description)} chars of description)")
        prompt = render_prompt(
            "generate_story_map",
            product_description=description,
            response_language=RESPONSE_LANGUAGES[detect_language(description)],
        )
        return self._run(prompt)

    def generate_with_feedback(self, current: StoryMap, feedback: str) -> dict:
        logger.info(f"Regenerating story map '{current.title}' with feedback")
        story_map_json = json.dumps(to_yaml_form(current), ensure_ascii=False, indent=2)
        prompt = render_prompt(
            "refine_story_map",
            story_map_json=story_map_json,
            feedback=feedback,
            response_language=RESPONSE_LANGUAGES[detect_language(feedback)],
        )
        return self._run(prompt)


class TemplateGenerator:
    """Offline generator returning fixed domain story maps."""

    def generate(self, description: str) -> dict:
        story_map = match_domain_template(description)
        if story_map is None:
            logger.info("No domain template matched, using generic template")
            story_map = generic_template(description)
        return story_map

    def generate_with_feedback(self, current: StoryMap, feedback: str) -> dict:
        raise GeneratorUnavailable("Template generator cannot apply feedback")


def build_generator(config: StoryMapperConfig) -> StoryMapGenerator:
    """Create the generator named in config.

    Raises:
        ValueError: If config.generator is not a known generator name
    """
    if config.generator == "claude":
        return ClaudeGenerator(command=config.generator_command, timeout=config.generator_timeout)
    if config.generator == "template":
        return TemplateGenerator()
    raise ValueError(
        f"Unknown generator '{config.generator}'. Valid: {', '.join(VALID_GENERATORS)}"
    )
