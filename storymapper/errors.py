"""
Exception hierarchy for storymapper.

Only MalformedGenerationResult and ElementNotFound are meant to reach the
end user. Everything else is recovered close to where it happens (fallback
mutator, logged store failures).
"""


class StoryMapError(Exception):
    """Base class for storymapper errors."""
    pass


class GenerationError(StoryMapError):
    """Talking to the story map generator failed."""
    pass


class MalformedGenerationResult(GenerationError):
    """Generator output could not be read as a story map at all."""
    pass


class GeneratorUnavailable(GenerationError):
    """Generator could not be reached (missing CLI, non-zero exit, timeout)."""
    pass


class GenerationInProgress(StoryMapError):
    """A generation is already running for this editing session."""
    pass


class StoreUnavailable(StoryMapError):
    """Document store could not be read or written."""
    pass


class ElementNotFound(StoryMapError):
    """No phase, activity or user story has the requested id."""
    pass
