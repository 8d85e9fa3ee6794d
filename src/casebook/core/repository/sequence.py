"""Id allocation and ordering helpers shared by the repositories."""

from collections.abc import Iterable
from datetime import UTC, datetime

from casebook.core.store.document_store import SECTION_ID_SEQUENCES
from casebook.protocols import StoreProtocol

_EARLIEST = datetime.min.replace(tzinfo=UTC)


def next_id(store: StoreProtocol, entity: str, existing_ids: Iterable[int | None]) -> int:
    """Return the id for a new record of the given entity.

    The result is one more than both the largest existing id and the largest
    id ever handed out, so ids are not reused after a delete.
    """
    sequences = store.get_section(SECTION_ID_SEQUENCES)
    highest = max((i for i in existing_ids if i is not None), default=0)
    try:
        issued = int(sequences.get(entity, 0))
    except (TypeError, ValueError):
        issued = 0
    return max(highest, issued) + 1


def remember_id(store: StoreProtocol, entity: str, issued_id: int) -> None:
    """Record issued_id as the high-water mark for entity."""
    sequences = store.get_section(SECTION_ID_SEQUENCES)
    sequences[entity] = issued_id
    store.put_section(SECTION_ID_SEQUENCES, sequences)


def date_sort_key(value: str | None) -> datetime:
    """Sort key for ISO timestamps. Missing or unparsable dates sort earliest."""
    if not value:
        return _EARLIEST
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return _EARLIEST
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
