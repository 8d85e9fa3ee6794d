"""Persist decoded imports and load raw bundles from files or URLs."""

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import requests
from loguru import logger

from casebook.config import FETCH_MAX_BYTES, FETCH_TIMEOUT, USER_AGENT
from casebook.core.bundle.codec import DecodedImport, ImportedCollection, plain_text_case
from casebook.core.repository.associations import AssociationManager
from casebook.core.repository.cases import CaseRepository
from casebook.core.repository.collections import CollectionRepository
from casebook.errors import BundleFetchError, MalformedInputError
from casebook.protocols import HttpSessionProtocol


@dataclass(frozen=True)
class ImportStats:
    """Summary of an import operation."""

    cases_imported: int
    collections_imported: int
    links_created: int
    case_ids: tuple[int, ...] = ()
    collection_ids: tuple[int, ...] = ()


def _parents_first(items: tuple[ImportedCollection, ...]) -> list[ImportedCollection]:
    """Order collections so every in-bundle parent precedes its children.

    Collections caught in a parent cycle are appended last; the first of them
    is imported as a root, which breaks the cycle.
    """
    known = {item.source_id for item in items if item.source_id is not None}
    placed: set[int] = set()
    ordered: list[ImportedCollection] = []
    pending = list(items)
    while pending:
        waiting: list[ImportedCollection] = []
        for item in pending:
            parent = item.record.parent_collection_id
            if parent in known and parent not in placed:
                waiting.append(item)
                continue
            ordered.append(item)
            if item.source_id is not None:
                placed.add(item.source_id)
        if len(waiting) == len(pending):
            logger.warning("Collection hierarchy in bundle has a cycle; breaking it at the root")
            ordered.extend(waiting)
            break
        pending = waiting
    return ordered


def import_decoded(
    decoded: DecodedImport,
    *,
    cases: CaseRepository,
    collections: CollectionRepository,
    associations: AssociationManager,
) -> ImportStats:
    """Save decoded collections, cases and their links.

    Source ids from the bundle are mapped to the ids assigned here. A parent
    or membership that points outside the bundle is dropped. The import is
    not transactional: records saved before a failure stay saved.
    """
    id_map: dict[int, int] = {}
    new_collection_ids: list[int] = []
    for item in _parents_first(decoded.collections):
        parent = item.record.parent_collection_id
        mapped_parent = id_map.get(parent) if parent is not None else None
        record = replace(item.record, id=None, parent_collection_id=mapped_parent)
        new_id = collections.save(record)
        new_collection_ids.append(new_id)
        if item.source_id is not None:
            id_map[item.source_id] = new_id

    new_case_ids: list[int] = []
    links_created = 0
    for case in decoded.cases:
        member_of = tuple(id_map[i] for i in case.collection_ids or () if i in id_map)
        case_id = cases.save(replace(case, id=None, collection_ids=member_of))
        new_case_ids.append(case_id)
        for collection_id in member_of:
            if associations.add(case_id, collection_id):
                links_created += 1

    logger.info(
        "Import complete: {} cases, {} collections, {} links",
        len(new_case_ids), len(new_collection_ids), links_created,
    )
    return ImportStats(
        cases_imported=len(new_case_ids),
        collections_imported=len(new_collection_ids),
        links_created=links_created,
        case_ids=tuple(new_case_ids),
        collection_ids=tuple(new_collection_ids),
    )


def load_bundle_file(path: Path) -> Any:
    """Read an import payload from disk.

    A ``.json`` file must hold JSON. Any other file is tried as JSON first and
    otherwise imported as a plain-text case study.

    Raises:
        MalformedInputError: The file cannot be read as UTF-8 text, a ``.json``
            file is not valid JSON, or a text file is empty.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        msg = f"Cannot read bundle file {str(path)!r}: {e}"
        raise MalformedInputError(msg) from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        if path.suffix.lower() == ".json":
            msg = f"Invalid JSON format in bundle file {str(path)!r}"
            raise MalformedInputError(msg) from e
    logger.debug("{} is not JSON, importing it as a plain-text case", path)
    return plain_text_case(text)


def _read_limited(r: Any) -> bytes:
    try:
        declared = int(r.headers.get("Content-Length") or 0)
    except ValueError:
        declared = 0
    if declared > FETCH_MAX_BYTES:
        msg = f"Bundle is larger than {FETCH_MAX_BYTES} bytes"
        raise BundleFetchError(msg)

    body = bytearray()
    for chunk in r.iter_content(chunk_size=64 * 1024):
        body.extend(chunk)
        if len(body) > FETCH_MAX_BYTES:
            msg = f"Bundle is larger than {FETCH_MAX_BYTES} bytes"
            raise BundleFetchError(msg)
    return bytes(body)


def fetch_bundle(url: str, *, session: HttpSessionProtocol | None = None) -> Any:
    """Download a JSON import payload over HTTP(S).

    The body is streamed and the download is aborted once it exceeds
    FETCH_MAX_BYTES.

    Raises:
        BundleFetchError: Unsupported scheme, network failure, HTTP error or
            an oversized response.
        MalformedInputError: The response body is not JSON.
    """
    if urlparse(url).scheme not in ("http", "https"):
        msg = "Only HTTP and HTTPS URLs are supported"
        raise BundleFetchError(msg)

    sess = session or requests.Session()
    logger.debug("Fetching bundle from {!r}", url)
    try:
        r = sess.get(
            url,
            timeout=FETCH_TIMEOUT,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            stream=True,
        )
        try:
            r.raise_for_status()
            body = _read_limited(r)
        finally:
            r.close()
    except requests.Timeout as e:
        msg = "Request timeout: bundle took too long to download"
        raise BundleFetchError(msg) from e
    except requests.HTTPError as e:
        response = e.response
        if response is not None and response.status_code == 404:
            msg = "Bundle URL not found (404)"
        elif response is not None:
            msg = f"Server error: {response.status_code} {response.reason or 'Unknown error'}"
        else:
            msg = f"Server error: {e}"
        raise BundleFetchError(msg) from e
    except requests.ConnectionError as e:
        msg = f"Network error: unable to reach {urlparse(url).hostname!r}"
        raise BundleFetchError(msg) from e
    except requests.RequestException as e:
        msg = f"Network error: download from {urlparse(url).hostname!r} failed"
        raise BundleFetchError(msg) from e

    try:
        return json.loads(body)
    except ValueError as e:
        msg = "URL did not return JSON"
        raise MalformedInputError(msg) from e
