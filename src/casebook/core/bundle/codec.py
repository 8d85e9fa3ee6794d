"""Encode library exports as v2.0 bundles and decode the three import shapes.

Accepted import shapes, tried in this order:

1. v2.0 bundle: ``bundle_info.version == "2.0"`` with ``collections`` and
   ``cases`` arrays.
2. v1.0 legacy collection: a non-empty ``cases`` array, no hierarchy.
3. Single case: an object with ``title`` and ``content``.

Decoding never trusts derived or bookkeeping values from the input: word
counts are recomputed, usage counts reset, timestamps stamped at decode time
and collection counts left for the repository to compute.
"""

import json
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from loguru import logger

from casebook.errors import MalformedInputError
from casebook.models.records import (
    CaseRecord,
    CollectionRecord,
    Complexity,
    ScenarioType,
    coerce_enum,
    count_words,
    now_iso,
)

BUNDLE_VERSION = "2.0"
LEGACY_VERSION = "1.0"
EXPORTED_BY = "casebook"
DEFAULT_COLLECTION_COLOR = "#2563EB"


class BundleFormat(StrEnum):
    BUNDLE_V2 = "bundle-2.0"
    LEGACY_V1 = "collection-1.0"
    SINGLE_CASE = "single-case"


@dataclass(frozen=True)
class ImportedCollection:
    """A decoded collection plus the ids it had in the source library.

    The record itself carries no id; source_id and the record's
    parent_collection_id refer to the exporting library and are remapped when
    the collection is persisted.
    """

    record: CollectionRecord
    source_id: int | None = None


@dataclass(frozen=True)
class DecodedImport:
    """Repository-ready records decoded from an import payload."""

    format: BundleFormat
    cases: tuple[CaseRecord, ...]
    collections: tuple[ImportedCollection, ...]
    collection_info: dict[str, Any]
    bundle: dict[str, Any] | None = None


# --- Export ---


def encode(
    collections: Sequence[CollectionRecord],
    cases: Sequence[CaseRecord],
    *,
    title: str | None = None,
    description: str | None = None,
) -> dict[str, Any]:
    """Serialize collections and cases into a v2.0 bundle document.

    Computed collection counts are dropped, every case carries an explicit
    collection_ids list, and collection_hierarchies is derived from the same
    data as an informational index.
    """
    case_dicts = []
    for case in cases:
        data = case.to_dict()
        data["collection_ids"] = list(case.collection_ids or ())
        case_dicts.append(data)

    hierarchies = [
        {
            "collection_id": collection.id,
            "case_ids": [
                case.id
                for case in cases
                if case.id is not None and collection.id in (case.collection_ids or ())
            ],
            "subcollection_ids": [
                c.id
                for c in collections
                if c.id is not None and c.parent_collection_id == collection.id
            ],
        }
        for collection in collections
        if collection.id is not None
    ]

    return {
        "bundle_info": {
            "title": title or "Casebook Bundle",
            "description": description
            or f"Bundle containing {len(collections)} collections and {len(cases)} case studies",
            "exported_by": EXPORTED_BY,
            "exported_at": now_iso(),
            "version": BUNDLE_VERSION,
            "total_collections": len(collections),
            "total_cases": len(cases),
        },
        "collections": [c.to_dict() for c in collections],
        "cases": case_dicts,
        "collection_hierarchies": hierarchies,
    }


# --- Import ---


def _has_text(value: Any) -> bool:
    return bool(value) and not isinstance(value, dict | list)


def _normalize_case(
    raw: dict[str, Any],
    *,
    fallback_tags: Sequence[str],
    collection_ids: Any,
    stamp: str,
) -> CaseRecord:
    tags = raw.get("tags")
    answers = raw.get("answers")
    content = str(raw["content"])
    return CaseRecord(
        title=str(raw["title"]),
        domain=str(raw.get("domain") or "General"),
        complexity=coerce_enum(Complexity, raw.get("complexity"), Complexity.INTERMEDIATE),
        scenario_type=coerce_enum(
            ScenarioType, raw.get("scenario_type"), ScenarioType.PROBLEM_SOLVING
        ),
        content=content,
        questions=str(raw.get("questions") or ""),
        answers=str(answers) if answers else None,
        tags=tuple(str(t) for t in tags) if isinstance(tags, list) else tuple(fallback_tags),
        is_favorite=bool(raw.get("is_favorite") or False),
        word_count=count_words(content),
        usage_count=0,
        created_date=stamp,
        modified_date=stamp,
        collection_ids=_source_ids(collection_ids),
    )


def _source_ids(values: Any) -> tuple[int, ...]:
    if not isinstance(values, list):
        return ()
    ids: list[int] = []
    for v in values:
        if isinstance(v, int) and not isinstance(v, bool):
            ids.append(v)
    return tuple(ids)


def _source_id(value: Any) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def _decode_cases(
    raw_cases: Any, *, fallback_tags: Sequence[str], keep_collection_ids: bool, stamp: str
) -> list[CaseRecord]:
    if not isinstance(raw_cases, list):
        return []
    decoded: list[CaseRecord] = []
    for i, raw in enumerate(raw_cases):
        if not isinstance(raw, dict) or not _has_text(raw.get("title")) or not _has_text(
            raw.get("content")
        ):
            logger.debug("Skipping case entry {}: missing title or content", i)
            continue
        decoded.append(
            _normalize_case(
                raw,
                fallback_tags=fallback_tags,
                collection_ids=raw.get("collection_ids") if keep_collection_ids else None,
                stamp=stamp,
            )
        )
    return decoded


def _decode_collections(raw_collections: Any, *, stamp: str) -> list[ImportedCollection]:
    if not isinstance(raw_collections, list):
        return []
    decoded: list[ImportedCollection] = []
    for i, raw in enumerate(raw_collections):
        if not isinstance(raw, dict) or not _has_text(raw.get("name")):
            logger.debug("Skipping collection entry {}: missing name", i)
            continue
        description = raw.get("description")
        record = CollectionRecord(
            name=str(raw["name"]),
            description=str(description) if description else None,
            color=str(raw.get("color") or DEFAULT_COLLECTION_COLOR),
            parent_collection_id=_source_id(raw.get("parent_collection_id")),
            created_date=stamp,
            modified_date=stamp,
        )
        decoded.append(ImportedCollection(record=record, source_id=_source_id(raw.get("id"))))
    return decoded


def _decode_bundle(raw: dict[str, Any], stamp: str) -> DecodedImport:
    info = raw["bundle_info"]
    collections = _decode_collections(raw.get("collections"), stamp=stamp)
    cases = _decode_cases(
        raw.get("cases"),
        fallback_tags=("imported", "bundle"),
        keep_collection_ids=True,
        stamp=stamp,
    )
    if not cases:
        msg = "No valid case studies found in bundle"
        raise MalformedInputError(msg)

    collection_info = {
        "title": info.get("title") or "Imported Bundle",
        "description": info.get("description") or "",
        "total_cases": len(cases),
        "total_collections": len(collections),
        "exported_by": info.get("exported_by") or "Unknown",
        "exported_at": info.get("exported_at") or stamp,
        "version": BUNDLE_VERSION,
    }
    return DecodedImport(
        format=BundleFormat.BUNDLE_V2,
        cases=tuple(cases),
        collections=tuple(collections),
        collection_info=collection_info,
        bundle=raw,
    )


def _decode_legacy(raw: dict[str, Any], stamp: str) -> DecodedImport:
    # The legacy format has no hierarchy, so collection_ids are always dropped.
    cases = _decode_cases(
        raw["cases"],
        fallback_tags=("imported", "collection"),
        keep_collection_ids=False,
        stamp=stamp,
    )
    if not cases:
        msg = "No valid case studies found in collection"
        raise MalformedInputError(msg)

    info = raw.get("collection_info")
    if not isinstance(info, dict):
        info = {}
    collection_info = {
        "title": info.get("title") or "Imported Collection",
        "description": info.get("description") or f"Collection of {len(cases)} case studies",
        "total_cases": len(cases),
        "exported_by": raw.get("exported_by") or "Unknown",
        "exported_at": raw.get("exported_at") or stamp,
        "version": raw.get("version") or LEGACY_VERSION,
    }
    return DecodedImport(
        format=BundleFormat.LEGACY_V1,
        cases=tuple(cases),
        collections=(),
        collection_info=collection_info,
    )


def _decode_single(raw: dict[str, Any], stamp: str) -> DecodedImport:
    case = _normalize_case(
        raw,
        fallback_tags=("imported",),
        collection_ids=raw.get("collection_ids"),
        stamp=stamp,
    )
    collection_info = {
        "title": "Single Case Import",
        "description": "Single case study imported as collection",
        "total_cases": 1,
        "exported_by": EXPORTED_BY,
        "exported_at": stamp,
        "version": LEGACY_VERSION,
    }
    return DecodedImport(
        format=BundleFormat.SINGLE_CASE,
        cases=(case,),
        collections=(),
        collection_info=collection_info,
    )


def classify(raw: Any) -> BundleFormat | None:
    """Return the import shape of raw, or None if it matches none of them."""
    if not isinstance(raw, dict):
        return None
    info = raw.get("bundle_info")
    if isinstance(info, dict) and info.get("version") == BUNDLE_VERSION:
        return BundleFormat.BUNDLE_V2
    cases = raw.get("cases")
    if isinstance(cases, list) and cases:
        return BundleFormat.LEGACY_V1
    if _has_text(raw.get("title")) and _has_text(raw.get("content")):
        return BundleFormat.SINGLE_CASE
    return None


def decode(raw: Any) -> DecodedImport:
    """Classify an import payload and normalize it into records.

    Entries failing minimal validation (a collection without a name, a case
    without title or content) are skipped silently.

    Raises:
        MalformedInputError: The payload matches no known shape, or no valid
            case remains after filtering.
    """
    fmt = classify(raw)
    stamp = now_iso()
    if fmt is BundleFormat.BUNDLE_V2:
        decoded = _decode_bundle(raw, stamp)
    elif fmt is BundleFormat.LEGACY_V1:
        decoded = _decode_legacy(raw, stamp)
    elif fmt is BundleFormat.SINGLE_CASE:
        decoded = _decode_single(raw, stamp)
    else:
        msg = "Invalid format: expected bundle, collection with cases array, or single case study"
        raise MalformedInputError(msg)

    logger.debug(
        "Decoded {} import: {} cases, {} collections",
        decoded.format, len(decoded.cases), len(decoded.collections),
    )
    return decoded


def plain_text_case(text: str) -> dict[str, Any]:
    """Wrap a plain-text case study in the single-case import shape.

    The first non-blank line is the title and the whole text is the content.

    Raises:
        MalformedInputError: The text is empty.
    """
    if not text.strip():
        msg = "Case study text file is empty"
        raise MalformedInputError(msg)
    title = text.lstrip().splitlines()[0].strip()
    return {
        "title": title,
        "content": text,
        "domain": "Imported",
        "tags": ["imported"],
    }


def decode_text(text: str) -> DecodedImport:
    """Parse JSON text and decode it."""
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        msg = "Invalid JSON format in bundle file"
        raise MalformedInputError(msg) from e
    return decode(raw)
