"""Collections: CRUD, parent/child bookkeeping and cascading delete."""

from __future__ import annotations

from collections import Counter
from dataclasses import replace

from loguru import logger

from casebook.core.repository.associations import AssociationManager
from casebook.core.repository.cases import CaseRepository
from casebook.core.repository.sequence import next_id, remember_id
from casebook.core.store.document_store import SECTION_COLLECTIONS
from casebook.errors import HierarchyCycleError, NotFoundError
from casebook.models.records import CaseRecord, CollectionRecord, now_iso
from casebook.protocols import StoreProtocol


class CollectionRepository:
    """Persist CollectionRecord objects in the "collections" section.

    case_count and subcollection_count are derived from the join records and
    the parent references on every read; stored values are never trusted.
    """

    def __init__(
        self,
        store: StoreProtocol,
        associations: AssociationManager,
        cases: CaseRepository,
    ) -> None:
        self.store = store
        self.associations = associations
        self.cases = cases

    def _load(self) -> list[CollectionRecord]:
        collections: list[CollectionRecord] = []
        for raw in self.store.get_section(SECTION_COLLECTIONS):
            try:
                collections.append(CollectionRecord.from_dict(raw))
            except (AttributeError, TypeError, ValueError):
                logger.debug("Ignoring malformed collection entry {!r}", raw)
        return collections

    def _save_all(self, collections: list[CollectionRecord]) -> None:
        self.store.put_section(SECTION_COLLECTIONS, [c.to_dict() for c in collections])

    def _with_counts(self, collections: list[CollectionRecord]) -> list[CollectionRecord]:
        case_counts = Counter(link.collection_id for link in self.associations.all_links())
        child_counts = Counter(
            c.parent_collection_id for c in collections if c.parent_collection_id is not None
        )
        return [
            replace(
                c,
                case_count=case_counts.get(c.id, 0),
                subcollection_count=child_counts.get(c.id, 0),
            )
            for c in collections
        ]

    def list(self) -> list[CollectionRecord]:
        """Return every collection ordered by id, with fresh counts."""
        collections = sorted(self._load(), key=lambda c: c.id or 0)
        return self._with_counts(collections)

    def get(self, collection_id: int) -> CollectionRecord | None:
        return next((c for c in self.list() if c.id == collection_id), None)

    def children_of(self, collection_id: int | None) -> list[CollectionRecord]:
        """Direct children of a collection, or the root collections for None."""
        return [c for c in self.list() if c.parent_collection_id == collection_id]

    def _check_parent(self, collection: CollectionRecord, stored: list[CollectionRecord]) -> None:
        parent_id = collection.parent_collection_id
        if parent_id is None:
            return
        parents = {c.id: c.parent_collection_id for c in stored}
        if parent_id not in parents:
            msg = f"Parent collection {parent_id} not found"
            raise NotFoundError(msg)
        if collection.id is None:
            return

        # Walk up from the new parent; reaching the collection itself means a cycle.
        seen: set[int] = set()
        current: int | None = parent_id
        while current is not None and current not in seen:
            if current == collection.id:
                msg = (
                    f"Collection {collection.id} cannot be nested under "
                    f"its own descendant {parent_id}"
                )
                raise HierarchyCycleError(msg)
            seen.add(current)
            current = parents.get(current)

    def save(self, collection: CollectionRecord) -> int:
        """Create or replace a collection and return its id.

        Raises:
            NotFoundError: The collection or its parent does not exist.
            HierarchyCycleError: The parent is the collection or one of its descendants.
        """
        collections = self._load()
        self._check_parent(collection, collections)
        now = now_iso()

        if collection.id is not None:
            for i, existing in enumerate(collections):
                if existing.id == collection.id:
                    collections[i] = replace(
                        collection, created_date=existing.created_date, modified_date=now
                    )
                    self._save_all(collections)
                    logger.debug("Updated collection {}", collection.id)
                    return collection.id
            msg = f"Collection {collection.id} not found"
            raise NotFoundError(msg)

        new_id = next_id(self.store, SECTION_COLLECTIONS, (c.id for c in collections))
        collections.append(replace(collection, id=new_id, created_date=now, modified_date=now))
        self._save_all(collections)
        remember_id(self.store, SECTION_COLLECTIONS, new_id)
        logger.debug("Created collection {} ({!r})", new_id, collection.name)
        return new_id

    def delete(self, collection_id: int) -> None:
        """Delete a collection, its links, and move its children to the root.

        Steps run in order: drop links into the collection, re-parent the
        direct children to the root, remove the record. Sub-collections are
        never deleted. An unknown id still runs the first two steps. The steps
        are separate writes and are not rolled back on failure.
        """
        removed_links = self.associations.remove_all_for_collection(collection_id)

        collections = self._load()
        reparented = 0
        for i, c in enumerate(collections):
            if c.parent_collection_id == collection_id:
                collections[i] = replace(c, parent_collection_id=None, modified_date=now_iso())
                reparented += 1
        if reparented:
            self._save_all(collections)

        kept = [c for c in collections if c.id != collection_id]
        if len(kept) != len(collections):
            self._save_all(kept)
            logger.debug(
                "Deleted collection {} ({} links removed, {} children moved to root)",
                collection_id, removed_links, reparented,
            )

    def cases_in(self, collection_id: int) -> list[CaseRecord]:
        """Cases linked to a collection. Links to deleted cases are skipped."""
        case_ids = {link.case_id for link in self.associations.links_for_collection(collection_id)}
        if not case_ids:
            return []
        return [c for c in self.cases.list() if c.id in case_ids]

    def collections_for(self, case_id: int) -> list[CollectionRecord]:
        """Collections a case belongs to. Links to deleted collections are skipped."""
        collection_ids = {link.collection_id for link in self.associations.links_for_case(case_id)}
        if not collection_ids:
            return []
        return [c for c in self.list() if c.id in collection_ids]
