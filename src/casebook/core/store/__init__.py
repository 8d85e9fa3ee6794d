"""Single-file JSON document store."""

from casebook.core.store.document_store import DocumentStore, StoreHealth, default_document

__all__ = ["DocumentStore", "StoreHealth", "default_document"]
