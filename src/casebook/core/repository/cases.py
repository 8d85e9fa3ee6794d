"""CRUD, filtering and substring search over case studies."""

from __future__ import annotations

from dataclasses import replace

from loguru import logger

from casebook.core.repository.sequence import date_sort_key, next_id, remember_id
from casebook.core.store.document_store import SECTION_CASES
from casebook.errors import NotFoundError
from casebook.models.records import CaseFilters, CaseRecord, now_iso
from casebook.protocols import StoreProtocol


def _newest_first(cases: list[CaseRecord]) -> list[CaseRecord]:
    return sorted(cases, key=lambda c: date_sort_key(c.modified_date), reverse=True)


class CaseRepository:
    """Persist CaseRecord objects in the "cases" section of the store."""

    def __init__(self, store: StoreProtocol) -> None:
        self.store = store

    def _load(self) -> list[CaseRecord]:
        cases: list[CaseRecord] = []
        for raw in self.store.get_section(SECTION_CASES):
            try:
                cases.append(CaseRecord.from_dict(raw))
            except (AttributeError, TypeError, ValueError):
                logger.debug("Ignoring malformed case entry {!r}", raw)
        return cases

    def _save_all(self, cases: list[CaseRecord]) -> None:
        self.store.put_section(SECTION_CASES, [c.to_dict() for c in cases])

    def list(self, filters: CaseFilters | None = None) -> list[CaseRecord]:
        """Return cases, newest modification first.

        Args:
            filters: Exact domain, exact complexity and favorites-only, ANDed.
        """
        cases = self._load()
        if filters is not None:
            if filters.domain:
                cases = [c for c in cases if c.domain == filters.domain]
            if filters.complexity:
                cases = [c for c in cases if c.complexity == filters.complexity]
            if filters.favorite:
                cases = [c for c in cases if c.is_favorite]
        return _newest_first(cases)

    def get(self, case_id: int) -> CaseRecord | None:
        return next((c for c in self._load() if c.id == case_id), None)

    def save(self, case: CaseRecord) -> int:
        """Create or replace a case and return its id.

        A case with an id replaces the stored record wholesale, keeping its
        created_date. A case without an id gets the next free id.

        Raises:
            NotFoundError: The case has an id that is not stored.
        """
        cases = self._load()
        now = now_iso()

        if case.id is not None:
            for i, existing in enumerate(cases):
                if existing.id == case.id:
                    cases[i] = replace(
                        case, created_date=existing.created_date, modified_date=now
                    )
                    self._save_all(cases)
                    logger.debug("Updated case {}", case.id)
                    return case.id
            msg = f"Case {case.id} not found"
            raise NotFoundError(msg)

        new_id = next_id(self.store, SECTION_CASES, (c.id for c in cases))
        cases.append(replace(case, id=new_id, created_date=now, modified_date=now))
        self._save_all(cases)
        remember_id(self.store, SECTION_CASES, new_id)
        logger.debug("Created case {} ({!r})", new_id, case.title)
        return new_id

    def delete(self, case_id: int) -> None:
        """Remove a case. Deleting an unknown id does nothing."""
        cases = self._load()
        kept = [c for c in cases if c.id != case_id]
        if len(kept) != len(cases):
            self._save_all(kept)
            logger.debug("Deleted case {}", case_id)

    def search(self, query: str) -> list[CaseRecord]:
        """Case-insensitive substring match on title, content and questions."""
        term = query.lower()
        matches = [
            c
            for c in self._load()
            if term in c.title.lower() or term in c.content.lower() or term in c.questions.lower()
        ]
        return _newest_first(matches)

    def increment_usage(self, case_id: int) -> int:
        """Bump a case's usage_count and return the new value."""
        case = self.get(case_id)
        if case is None:
            msg = f"Case {case_id} not found"
            raise NotFoundError(msg)
        self.save(replace(case, usage_count=case.usage_count + 1))
        return case.usage_count + 1
