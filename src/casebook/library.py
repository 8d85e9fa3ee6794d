"""Library facade: the repository surface used by the CLI and MCP server."""

from __future__ import annotations

import json
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from loguru import logger

from casebook.config import resolve_database_path
from casebook.core.bundle.codec import decode, encode
from casebook.core.bundle.importer import ImportStats, import_decoded
from casebook.core.repository.associations import AssociationManager
from casebook.core.repository.cases import CaseRepository
from casebook.core.repository.collections import CollectionRepository
from casebook.core.store.document_store import DocumentStore, StoreHealth
from casebook.core.tree.hierarchy import CollectionNode, build_forest
from casebook.models.records import CaseFilters, CaseRecord, CollectionRecord


@dataclass(frozen=True)
class ImportResult:
    """Records persisted by an import, with the synthesized collection info."""

    cases: tuple[CaseRecord, ...]
    collections: tuple[CollectionRecord, ...]
    collection_info: dict[str, Any]
    stats: ImportStats


class Library:
    """Case studies, collections and memberships over one document store."""

    def __init__(self, store: DocumentStore, *, health: StoreHealth | None = None) -> None:
        self.store = store
        self.health = health
        self.associations = AssociationManager(store)
        self.cases = CaseRepository(store)
        self.collections = CollectionRepository(store, self.associations, self.cases)

    @classmethod
    def open(cls, path: str | Path | None = None) -> Library:
        """Create a store at path (default: the configured library file) and load it."""
        store = DocumentStore(path or resolve_database_path())
        health = store.load()
        if health is StoreHealth.RECOVERED_WITH_DEFAULTS:
            logger.warning(
                "Library {} had unreadable data that was reset to defaults", store.path
            )
        return cls(store, health=health)

    # --- Cases ---

    def list_cases(self, filters: CaseFilters | None = None) -> list[CaseRecord]:
        return self.cases.list(filters)

    def get_case(self, case_id: int) -> CaseRecord | None:
        return self.cases.get(case_id)

    def save_case(self, case: CaseRecord) -> int:
        return self.cases.save(case)

    def delete_case(self, case_id: int) -> None:
        """Delete a case and its collection memberships."""
        self.cases.delete(case_id)
        self.associations.remove_all_for_case(case_id)

    def search_cases(self, query: str) -> list[CaseRecord]:
        return self.cases.search(query)

    # --- Collections ---

    def list_collections(self) -> list[CollectionRecord]:
        return self.collections.list()

    def save_collection(self, collection: CollectionRecord) -> int:
        return self.collections.save(collection)

    def delete_collection(self, collection_id: int) -> None:
        self.collections.delete(collection_id)

    def add_case_to_collection(self, case_id: int, collection_id: int) -> bool:
        return self.associations.add(case_id, collection_id)

    def remove_case_from_collection(self, case_id: int, collection_id: int) -> bool:
        return self.associations.remove(case_id, collection_id)

    def cases_in_collection(self, collection_id: int) -> list[CaseRecord]:
        return self.collections.cases_in(collection_id)

    def collections_for_case(self, case_id: int) -> list[CollectionRecord]:
        return self.collections.collections_for(case_id)

    def collection_tree(self) -> list[CollectionNode]:
        return build_forest(self.collections.list())

    # --- Bundles ---

    def export_bundle(
        self,
        collections: Sequence[CollectionRecord] | None = None,
        cases: Sequence[CaseRecord] | None = None,
        *,
        title: str | None = None,
        description: str | None = None,
    ) -> dict[str, Any]:
        """Build a v2.0 bundle, by default of the whole library.

        Each exported case's collection_ids is filled from the join records,
        restricted to the exported collections.
        """
        if collections is None:
            collections = self.collections.list()
        if cases is None:
            cases = self.cases.list()

        exported_ids = {c.id for c in collections}
        memberships: dict[int, list[int]] = defaultdict(list)
        for link in self.associations.all_links():
            if link.collection_id in exported_ids:
                memberships[link.case_id].append(link.collection_id)
        cases = [
            replace(c, collection_ids=tuple(memberships[c.id]) if c.id in memberships else ())
            for c in cases
        ]
        return encode(collections, cases, title=title, description=description)

    def write_bundle(self, path: Path, **kwargs: Any) -> dict[str, Any]:
        """Export a bundle and write it to path as pretty JSON."""
        bundle = self.export_bundle(**kwargs)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(bundle, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        logger.info(
            "Exported {} collections and {} cases to {}",
            bundle["bundle_info"]["total_collections"],
            bundle["bundle_info"]["total_cases"],
            path,
        )
        return bundle

    def import_bundle(self, raw: Any) -> ImportResult:
        """Decode an import payload of any supported shape and persist it.

        Raises:
            MalformedInputError: The payload cannot be decoded.
        """
        decoded = decode(raw)
        stats = import_decoded(
            decoded,
            cases=self.cases,
            collections=self.collections,
            associations=self.associations,
        )
        case_ids = set(stats.case_ids)
        collection_ids = set(stats.collection_ids)
        return ImportResult(
            cases=tuple(c for c in self.cases.list() if c.id in case_ids),
            collections=tuple(c for c in self.collections.list() if c.id in collection_ids),
            collection_info=decoded.collection_info,
            stats=stats,
        )
