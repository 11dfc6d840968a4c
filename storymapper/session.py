"""Story map editing session using transitions library.

One session edits one story map. It wires the generator, the feedback
mutator and the document store together and allows one generation at a
time:

    idle ──start──> generating ──succeed──> ready
                        │                     │
                        └──fail──> failed ────┘ (start again)

Usage:
    from storymapper.session import StoryMapSession

    session = StoryMapSession(generator, store)
    session.generate("An app for managing home charging stations")
    session.apply_feedback("补充用户故事")
"""

import logging
from typing import Callable, Optional

from transitions import Machine

from storymapper.errors import (
    GenerationInProgress,
    MalformedGenerationResult,
    StoreUnavailable,
)
from storymapper.feedback import FeedbackMutator
from storymapper.models import StoryMap
from storymapper.normalizer import normalize_to_document
from storymapper.store import DocumentStore

logger = logging.getLogger(__name__)


STATES = ["idle", "generating", "ready", "failed"]

TRANSITIONS = [
    {"trigger": "start", "source": ["idle", "ready", "failed"], "dest": "generating"},
    {"trigger": "succeed", "source": "generating", "dest": "ready"},
    {"trigger": "fail", "source": "generating", "dest": "failed"},

    # Opening a stored document
    {"trigger": "open", "source": ["idle", "ready", "failed"], "dest": "ready"},
]

# Malformed output is retried this many times before it is surfaced
MALFORMED_RETRIES = 1


class StoryMapSession:
    """Editing session for a single story map.

    Store failures are logged and do not discard the in-memory document.
    """

    def __init__(
        self,
        generator,
        store: Optional[DocumentStore] = None,
        mutator: Optional[FeedbackMutator] = None,
        on_transition: Callable[[str, str, str], None] | None = None,
    ):
        self.generator = generator
        self.store = store
        self.mutator = mutator or FeedbackMutator(generator)
        self.on_transition = on_transition
        self.story_map: Optional[StoryMap] = None
        self.last_error: Optional[Exception] = None

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial="idle",
            auto_transitions=False,
            send_event=True,
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        from_state = event.transition.source
        to_state = event.transition.dest
        trigger = event.event.name

        logger.info(f"[session] {from_state} -> {to_state} ({trigger})")

        if self.on_transition:
            self.on_transition(from_state, to_state, trigger)

    def _begin(self) -> None:
        if self.state == "generating":
            raise GenerationInProgress("A story map generation is already running")
        self.last_error = None
        self.start()

    def _finish(self, story_map: StoryMap) -> StoryMap:
        self.story_map = story_map
        self.succeed()
        self._persist(story_map)
        return story_map

    def _persist(self, story_map: StoryMap) -> None:
        if self.store is None:
            return
        try:
            self.store.put(story_map)
            self.store.set_current(story_map.id)
        except StoreUnavailable as e:
            logger.warning(f"Could not save story map {story_map.id}: {e}")

    def generate(self, description: str) -> StoryMap:
        """Generate a new story map from a product description.

        Raises:
            GenerationInProgress: If a generation is already running
            MalformedGenerationResult: If the output is still malformed after a retry
            GeneratorUnavailable: If the generator cannot be reached
        """
        self._begin()
        attempts = MALFORMED_RETRIES + 1
        for attempt in range(1, attempts + 1):
            try:
                raw = self.generator.generate(description)
                story_map = normalize_to_document(raw)
                break
            except MalformedGenerationResult as e:
                if attempt < attempts:
                    logger.warning(f"Malformed generation result, retrying ({attempt}/{attempts}): {e}")
                    continue
                self.last_error = e
                self.fail()
                raise
            except Exception as e:
                self.last_error = e
                self.fail()
                raise

        logger.info(f"Generated story map '{story_map.title}' ({len(story_map.epics)} epics)")
        return self._finish(story_map)

    def apply_feedback(self, feedback: str) -> StoryMap:
        """Apply feedback to the current story map (or start one from it).

        Raises:
            GenerationInProgress: If a generation is already running
        """
        self._begin()
        try:
            story_map = self.mutator.apply(feedback, self.story_map)
        except Exception as e:
            self.last_error = e
            self.fail()
            raise
        return self._finish(story_map)

    def load(self, map_id: Optional[str] = None) -> Optional[StoryMap]:
        """Open a stored story map (the current one when map_id is None)."""
        if self.store is None:
            return None
        if self.state == "generating":
            raise GenerationInProgress("Cannot open a story map while generating")

        story_map = self.store.get(map_id) if map_id else self.store.get_current()
        if story_map is None:
            return None
        self.story_map = story_map
        self.open()
        return story_map
