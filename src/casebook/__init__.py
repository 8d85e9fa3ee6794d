"""Local case-study library with collections and portable bundles."""

from casebook.core.store.document_store import DocumentStore, StoreHealth
from casebook.library import ImportResult, Library
from casebook.models.records import CaseFilters, CaseRecord, CollectionRecord, LinkRecord

__all__ = [
    "CaseFilters",
    "CaseRecord",
    "CollectionRecord",
    "DocumentStore",
    "ImportResult",
    "Library",
    "LinkRecord",
    "StoreHealth",
]
