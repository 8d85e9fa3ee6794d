"""Many-to-many membership links between cases and collections."""

from loguru import logger

from casebook.core.store.document_store import SECTION_LINKS
from casebook.models.records import LinkRecord
from casebook.protocols import StoreProtocol


class AssociationManager:
    """Own the case_collections join records.

    A link is the pair (case_id, collection_id); the pair is unique and the
    absence of a link means "not a member".
    """

    def __init__(self, store: StoreProtocol) -> None:
        self.store = store

    def _load(self) -> list[LinkRecord]:
        links: list[LinkRecord] = []
        for raw in self.store.get_section(SECTION_LINKS):
            try:
                links.append(LinkRecord.from_dict(raw))
            except (KeyError, TypeError, ValueError):
                logger.debug("Ignoring malformed link entry {!r}", raw)
        return links

    def _save(self, links: list[LinkRecord]) -> None:
        self.store.put_section(SECTION_LINKS, [link.to_dict() for link in links])

    def all_links(self) -> list[LinkRecord]:
        return self._load()

    def add(self, case_id: int, collection_id: int) -> bool:
        """Link a case to a collection. Returns False if the link already existed."""
        link = LinkRecord(case_id=case_id, collection_id=collection_id)
        links = self._load()
        if link in links:
            return False
        links.append(link)
        self._save(links)
        logger.debug("Added case {} to collection {}", case_id, collection_id)
        return True

    def remove(self, case_id: int, collection_id: int) -> bool:
        """Unlink a case from a collection. Returns False if there was no link."""
        link = LinkRecord(case_id=case_id, collection_id=collection_id)
        links = self._load()
        if link not in links:
            return False
        self._save([x for x in links if x != link])
        logger.debug("Removed case {} from collection {}", case_id, collection_id)
        return True

    def links_for_case(self, case_id: int) -> list[LinkRecord]:
        return [x for x in self._load() if x.case_id == case_id]

    def links_for_collection(self, collection_id: int) -> list[LinkRecord]:
        return [x for x in self._load() if x.collection_id == collection_id]

    def remove_all_for_case(self, case_id: int) -> int:
        """Drop every link of a case. Returns the number of links removed."""
        links = self._load()
        kept = [x for x in links if x.case_id != case_id]
        removed = len(links) - len(kept)
        if removed:
            self._save(kept)
        return removed

    def remove_all_for_collection(self, collection_id: int) -> int:
        """Drop every link into a collection. Returns the number of links removed."""
        links = self._load()
        kept = [x for x in links if x.collection_id != collection_id]
        removed = len(links) - len(kept)
        if removed:
            self._save(kept)
        return removed
