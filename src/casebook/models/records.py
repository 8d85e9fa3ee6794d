"""Domain records stored in the casebook library."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, TypeVar


E = TypeVar("E", bound=StrEnum)


class Complexity(StrEnum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class ScenarioType(StrEnum):
    PROBLEM_SOLVING = "Problem-solving"
    DECISION_MAKING = "Decision-making"
    ETHICAL_DILEMMA = "Ethical Dilemma"
    STRATEGIC_PLANNING = "Strategic Planning"


def now_iso() -> str:
    """Current time as an ISO-8601 UTC timestamp."""
    return datetime.now(UTC).isoformat()


def count_words(content: str) -> int:
    """Naive whitespace word count, as stored in CaseRecord.word_count."""
    return len(content.split())


def coerce_enum(enum_cls: type[E], value: Any, default: E) -> E:
    """Return value as a member of enum_cls, or default if it is not one of its literals."""
    try:
        return enum_cls(value)
    except (TypeError, ValueError):
        return default


def _int_or_none(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _int_tuple(values: Any) -> tuple[int, ...]:
    if not isinstance(values, list | tuple):
        return ()
    result = (_int_or_none(v) for v in values)
    return tuple(v for v in result if v is not None)


@dataclass(frozen=True)
class CaseRecord:
    """A single generated case study."""

    title: str
    content: str
    domain: str = "General"
    complexity: Complexity = Complexity.INTERMEDIATE
    scenario_type: ScenarioType = ScenarioType.PROBLEM_SOLVING
    questions: str = ""
    answers: str | None = None
    tags: tuple[str, ...] = ()
    is_favorite: bool = False
    word_count: int = 0
    usage_count: int = 0
    id: int | None = None
    created_date: str | None = None
    modified_date: str | None = None
    # Denormalized hint; the join records are authoritative.
    collection_ids: tuple[int, ...] | None = None

    def __post_init__(self) -> None:
        # Enum fields accept their literal values; anything else is rejected here.
        object.__setattr__(self, "complexity", Complexity(self.complexity))
        object.__setattr__(self, "scenario_type", ScenarioType(self.scenario_type))
        object.__setattr__(self, "tags", tuple(self.tags))
        if self.collection_ids is not None:
            object.__setattr__(self, "collection_ids", tuple(self.collection_ids))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted/wire shape. None optionals are omitted."""
        data: dict[str, Any] = {
            "title": self.title,
            "domain": self.domain,
            "complexity": str(self.complexity),
            "scenario_type": str(self.scenario_type),
            "content": self.content,
            "questions": self.questions,
            "tags": list(self.tags),
            "is_favorite": self.is_favorite,
            "word_count": self.word_count,
            "usage_count": self.usage_count,
        }
        if self.id is not None:
            data["id"] = self.id
        if self.answers is not None:
            data["answers"] = self.answers
        if self.created_date is not None:
            data["created_date"] = self.created_date
        if self.modified_date is not None:
            data["modified_date"] = self.modified_date
        if self.collection_ids is not None:
            data["collection_ids"] = list(self.collection_ids)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CaseRecord":
        """Build a record from the persisted shape.

        Enum values outside the allowed literals fall back to the defaults so a
        hand-edited library file never makes the whole section unreadable.
        """
        complexity = data.get("complexity")
        scenario_type = data.get("scenario_type")
        answers = data.get("answers")
        return cls(
            id=_int_or_none(data.get("id")),
            title=str(data.get("title", "")),
            domain=str(data.get("domain") or "General"),
            complexity=coerce_enum(Complexity, complexity, Complexity.INTERMEDIATE),
            scenario_type=coerce_enum(ScenarioType, scenario_type, ScenarioType.PROBLEM_SOLVING),
            content=str(data.get("content", "")),
            questions=str(data.get("questions") or ""),
            answers=None if answers is None else str(answers),
            tags=tuple(str(t) for t in data.get("tags") or ()),
            is_favorite=bool(data.get("is_favorite", False)),
            word_count=_int_or_none(data.get("word_count")) or 0,
            usage_count=_int_or_none(data.get("usage_count")) or 0,
            created_date=data.get("created_date"),
            modified_date=data.get("modified_date"),
            collection_ids=(
                _int_tuple(data["collection_ids"]) if "collection_ids" in data else None
            ),
        )


@dataclass(frozen=True)
class CollectionRecord:
    """A named folder of cases, optionally nested under another collection."""

    name: str
    description: str | None = None
    color: str | None = None
    parent_collection_id: int | None = None
    id: int | None = None
    created_date: str | None = None
    modified_date: str | None = None
    # Computed on every read, never persisted.
    case_count: int = field(default=0, compare=False)
    subcollection_count: int = field(default=0, compare=False)

    def to_dict(self) -> dict[str, Any]:
        """Serialize without the computed count fields."""
        data: dict[str, Any] = {"name": self.name}
        if self.id is not None:
            data["id"] = self.id
        if self.description is not None:
            data["description"] = self.description
        if self.color is not None:
            data["color"] = self.color
        if self.parent_collection_id is not None:
            data["parent_collection_id"] = self.parent_collection_id
        if self.created_date is not None:
            data["created_date"] = self.created_date
        if self.modified_date is not None:
            data["modified_date"] = self.modified_date
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CollectionRecord":
        description = data.get("description")
        color = data.get("color")
        return cls(
            id=_int_or_none(data.get("id")),
            name=str(data.get("name", "")),
            description=None if description is None else str(description),
            color=None if color is None else str(color),
            parent_collection_id=_int_or_none(data.get("parent_collection_id")),
            created_date=data.get("created_date"),
            modified_date=data.get("modified_date"),
        )


@dataclass(frozen=True)
class LinkRecord:
    """Membership of a case in a collection."""

    case_id: int
    collection_id: int

    def to_dict(self) -> dict[str, int]:
        return {"case_id": self.case_id, "collection_id": self.collection_id}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LinkRecord":
        return cls(case_id=int(data["case_id"]), collection_id=int(data["collection_id"]))


@dataclass(frozen=True)
class CaseFilters:
    """Optional filters for listing cases. Set fields are ANDed."""

    domain: str | None = None
    complexity: Complexity | None = None
    favorite: bool = False
