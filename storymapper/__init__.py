"""
storymapper - story map generation, normalization and feedback editing.

Turns a product description into a hierarchical story map (phases ->
activities -> user stories -> supporting needs), refines it from free-text
feedback and projects it into a display layout.
"""

from storymapper.editing import add_epic, add_feature, add_story, delete_element, set_priority, update_element
from storymapper.errors import (
    ElementNotFound,
    GenerationError,
    GenerationInProgress,
    GeneratorUnavailable,
    MalformedGenerationResult,
    StoreUnavailable,
    StoryMapError,
)
from storymapper.feedback import FeedbackMutator
from storymapper.generator import ClaudeGenerator, TemplateGenerator, build_generator
from storymapper.layout import find_supporting_needs, lane_color, project_layout
from storymapper.markdown import export_filename, to_markdown
from storymapper.models import Epic, Feature, StoryMap, SupportingRequirement, UserStory
from storymapper.mutations import FeedbackAction, classify_feedback
from storymapper.normalizer import normalize_story_map, normalize_to_document
from storymapper.session import StoryMapSession
from storymapper.store import DocumentStore
from storymapper.touchpoints import infer_touchpoint, infer_touchpoint_parts

__all__ = [
    "StoryMapError",
    "GenerationError",
    "MalformedGenerationResult",
    "GeneratorUnavailable",
    "GenerationInProgress",
    "StoreUnavailable",
    "ElementNotFound",
    "StoryMap",
    "Epic",
    "Feature",
    "UserStory",
    "SupportingRequirement",
    "normalize_story_map",
    "normalize_to_document",
    "FeedbackAction",
    "classify_feedback",
    "FeedbackMutator",
    "add_epic",
    "add_feature",
    "add_story",
    "update_element",
    "delete_element",
    "set_priority",
    "infer_touchpoint",
    "infer_touchpoint_parts",
    "project_layout",
    "lane_color",
    "find_supporting_needs",
    "to_markdown",
    "export_filename",
    "ClaudeGenerator",
    "TemplateGenerator",
    "build_generator",
    "DocumentStore",
    "StoryMapSession",
]
