"""Domain records for the casebook library."""

from casebook.models.records import (
    CaseFilters,
    CaseRecord,
    CollectionRecord,
    Complexity,
    LinkRecord,
    ScenarioType,
)

__all__ = [
    "CaseFilters",
    "CaseRecord",
    "CollectionRecord",
    "Complexity",
    "LinkRecord",
    "ScenarioType",
]
