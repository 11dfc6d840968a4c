"""
Data models for story maps.

A story map is a tree: StoryMap -> Epic (phase) -> Feature (activity)
-> UserStory (task) -> SupportingRequirement. Two serialized forms exist:

  - stored form (camelCase keys), written by to_dict() and read by from_dict()
  - YAML form (snake_case keys), the generator wire format, see
    to_yaml_form() / from_yaml_form()
"""

import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

PRIORITIES = ("high", "medium", "low")
PRIORITY_RANK = {"high": 3, "medium": 2, "low": 1}
DEFAULT_PRIORITY = "medium"

STATUSES = ("todo", "in-progress", "done")
TASK_TYPES = ("epic", "feature", "task")

SUPPORTING_TYPES = (
    "software_dependency",
    "service_integration",
    "security_compliance",
    "performance_requirement",
)

TECHNICAL_SPEC_FIELDS = (
    "version",
    "api_endpoint",
    "sdk_name",
    "integration_type",
    "documentation_url",
)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_id(length: int = 9) -> str:
    """Generate a short random base-36 id."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def now_iso() -> str:
    return datetime.now().isoformat()


@dataclass
class TechnicalSpecs:
    version: str = ""
    api_endpoint: str = ""
    sdk_name: str = ""
    integration_type: str = ""
    documentation_url: str = ""

    def to_dict(self) -> dict:
        return {name: getattr(self, name) for name in TECHNICAL_SPEC_FIELDS}

    @classmethod
    def from_dict(cls, data: dict) -> "TechnicalSpecs":
        return cls(**{name: str(data.get(name) or "") for name in TECHNICAL_SPEC_FIELDS})


@dataclass
class SupportingRequirement:
    """A technical dependency needed to deliver a user story.

    Never a rephrasing of user-facing functionality. Has no id of its own;
    it lives and dies with the UserStory that owns it.
    """
    title: str
    description: str = ""
    type: str = "software_dependency"
    priority: str = DEFAULT_PRIORITY
    technical_specs: Optional[TechnicalSpecs] = None

    def to_dict(self) -> dict:
        data = {
            "title": self.title,
            "description": self.description,
            "type": self.type,
            "priority": self.priority,
        }
        if self.technical_specs is not None:
            data["technical_specs"] = self.technical_specs.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SupportingRequirement":
        specs = data.get("technical_specs")
        return cls(
            title=data.get("title", ""),
            description=data.get("description", ""),
            type=data.get("type", "software_dependency"),
            priority=data.get("priority", DEFAULT_PRIORITY),
            technical_specs=TechnicalSpecs.from_dict(specs) if isinstance(specs, dict) else None,
        )


@dataclass
class UserStory:
    """A single user-facing unit of work (a task on the map)."""
    id: str
    title: str
    description: str = ""
    type: str = "task"
    priority: str = DEFAULT_PRIORITY
    status: str = "todo"
    acceptance_criteria: list[str] = field(default_factory=list)
    estimated_effort: str = ""
    supporting_requirements: list[SupportingRequirement] = field(default_factory=list)
    assignee: Optional[str] = None
    dependencies: list[str] = field(default_factory=list)
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "type": self.type,
            "priority": self.priority,
            "status": self.status,
            "acceptanceCriteria": list(self.acceptance_criteria),
            "estimatedEffort": self.estimated_effort,
            "supportingRequirements": [r.to_dict() for r in self.supporting_requirements],
            "dependencies": list(self.dependencies),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.assignee is not None:
            data["assignee"] = self.assignee
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "UserStory":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            description=data.get("description", ""),
            type=data.get("type", "task"),
            priority=data.get("priority") or DEFAULT_PRIORITY,
            status=data.get("status", "todo"),
            acceptance_criteria=list(data.get("acceptanceCriteria", [])),
            estimated_effort=data.get("estimatedEffort", ""),
            supporting_requirements=[
                SupportingRequirement.from_dict(r)
                for r in data.get("supportingRequirements") or []
            ],
            assignee=data.get("assignee"),
            dependencies=list(data.get("dependencies") or []),
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
        )


@dataclass
class Feature:
    """An activity within a phase, grouping related user stories."""
    id: str
    title: str
    description: str = ""
    tasks: list[UserStory] = field(default_factory=list)
    order: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "tasks": [t.to_dict() for t in self.tasks],
            "order": self.order,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Feature":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            description=data.get("description", ""),
            tasks=[UserStory.from_dict(t) for t in data.get("tasks", [])],
            order=data.get("order", 0),
        )


@dataclass
class Epic:
    """A phase of the user journey."""
    id: str
    title: str
    description: str = ""
    features: list[Feature] = field(default_factory=list)
    order: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "features": [f.to_dict() for f in self.features],
            "order": self.order,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Epic":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            description=data.get("description", ""),
            features=[Feature.from_dict(f) for f in data.get("features", [])],
            order=data.get("order", 0),
        )


@dataclass
class StoryMap:
    """The full persisted story map document."""
    id: str
    title: str
    description: str = ""
    epics: list[Epic] = field(default_factory=list)
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "epics": [e.to_dict() for e in self.epics],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StoryMap":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            description=data.get("description", ""),
            epics=[Epic.from_dict(e) for e in data.get("epics", [])],
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
        )

    def iter_tasks(self):
        """Yield (epic, feature, task) for every task in document order."""
        for epic in self.epics:
            for feature in epic.features:
                for task in feature.tasks:
                    yield epic, feature, task

    def renumber(self) -> None:
        """Make every order field match its list position."""
        for epic_index, epic in enumerate(self.epics):
            epic.order = epic_index
            for feature_index, feature in enumerate(epic.features):
                feature.order = feature_index


def to_yaml_form(story_map: StoryMap) -> dict:
    """Convert a document to the generator wire format (drops ids/status)."""
    return {
        "title": story_map.title,
        "description": story_map.description,
        "epics": [
            {
                "title": epic.title,
                "description": epic.description,
                "features": [
                    {
                        "title": feature.title,
                        "description": feature.description,
                        "tasks": [task_to_yaml_form(task) for task in feature.tasks],
                    }
                    for feature in epic.features
                ],
            }
            for epic in story_map.epics
        ],
    }


def task_to_yaml_form(task: UserStory) -> dict:
    return {
        "title": task.title,
        "description": task.description,
        "priority": task.priority,
        "effort": task.estimated_effort,
        "acceptance_criteria": list(task.acceptance_criteria),
        "supporting_requirements": [r.to_dict() for r in task.supporting_requirements],
    }


def task_from_yaml_form(data: dict, timestamp: Optional[str] = None) -> UserStory:
    """Build a UserStory with a fresh id from an already-normalized YAML task."""
    timestamp = timestamp or now_iso()
    return UserStory(
        id=generate_id(),
        title=data["title"],
        description=data.get("description", ""),
        type="task",
        priority=data.get("priority", DEFAULT_PRIORITY),
        status="todo",
        acceptance_criteria=list(data.get("acceptance_criteria", [])),
        estimated_effort=data.get("effort", ""),
        supporting_requirements=[
            SupportingRequirement.from_dict(r)
            for r in data.get("supporting_requirements", [])
        ],
        created_at=timestamp,
        updated_at=timestamp,
    )


def from_yaml_form(data: dict) -> StoryMap:
    """Build a StoryMap with fresh ids from an already-normalized YAML form.

    Callers must run the normalizer first; this function trusts its input.
    """
    timestamp = now_iso()
    epics = []
    for epic_index, epic in enumerate(data["epics"]):
        features = []
        for feature_index, feature in enumerate(epic["features"]):
            features.append(Feature(
                id=generate_id(),
                title=feature["title"],
                description=feature["description"],
                tasks=[task_from_yaml_form(t, timestamp) for t in feature["tasks"]],
                order=feature_index,
            ))
        epics.append(Epic(
            id=generate_id(),
            title=epic["title"],
            description=epic["description"],
            features=features,
            order=epic_index,
        ))

    return StoryMap(
        id=generate_id(),
        title=data["title"],
        description=data["description"],
        epics=epics,
        created_at=timestamp,
        updated_at=timestamp,
    )
