"""Shared test fixtures."""

from pathlib import Path

import pytest

from casebook.core.store.document_store import DocumentStore
from casebook.library import Library
from casebook.models.records import CaseRecord, CollectionRecord, Complexity, ScenarioType

LEGACY_COLLECTION = {
    "collection_info": {"title": "Ethics Pack"},
    "exported_by": "CaseStudyGenerator",
    "cases": [
        {"title": "A", "content": "x y z", "complexity": "Expert", "collection_ids": [5]},
        {"title": "", "content": "skip me"},
    ],
}

SINGLE_CASE = {
    "title": "Supplier Crisis",
    "content": "A key supplier fails two weeks before launch.",
    "domain": "Operations",
    "complexity": "Advanced",
    "scenario_type": "Decision-making",
    "questions": "What do you do first?",
}


def make_case(
    title: str = "Pricing Shift",
    *,
    content: str | None = None,
    domain: str = "Business",
    complexity: Complexity = Complexity.INTERMEDIATE,
    scenario_type: ScenarioType = ScenarioType.PROBLEM_SOLVING,
    is_favorite: bool = False,
    tags: tuple[str, ...] = (),
) -> CaseRecord:
    """Build an unsaved case."""
    content = content or f"{title} content for discussion"
    return CaseRecord(
        title=title,
        content=content,
        domain=domain,
        complexity=complexity,
        scenario_type=scenario_type,
        is_favorite=is_favorite,
        tags=tags,
        word_count=len(content.split()),
    )


@pytest.fixture
def store(tmp_path: Path) -> DocumentStore:
    """Return a loaded store backed by a fresh file."""
    s = DocumentStore(tmp_path / "library.json")
    s.load()
    return s


@pytest.fixture
def library(tmp_path: Path) -> Library:
    """Return an empty library in tmp_path."""
    return Library.open(tmp_path / "library.json")


@pytest.fixture
def populated_library(library: Library) -> Library:
    """Library with a nested hierarchy and a few linked cases.

    Collections: Business(1) > Strategy(2) > Pricing(3), and Ethics(4).
    Cases: 1 in Business and Strategy, 2 in Pricing, 3 in nothing.
    """
    business = library.save_collection(
        CollectionRecord(name="Business", description="All business")
    )
    strategy = library.save_collection(
        CollectionRecord(name="Strategy", parent_collection_id=business)
    )
    pricing = library.save_collection(
        CollectionRecord(name="Pricing", parent_collection_id=strategy)
    )
    library.save_collection(CollectionRecord(name="Ethics"))

    c1 = library.save_case(make_case("Market Entry", content="Entering a new python market"))
    c2 = library.save_case(make_case("Discount War", is_favorite=True))
    library.save_case(
        make_case("Whistleblower", domain="Ethics", complexity=Complexity.ADVANCED)
    )

    library.add_case_to_collection(c1, business)
    library.add_case_to_collection(c1, strategy)
    library.add_case_to_collection(c2, pricing)
    return library
