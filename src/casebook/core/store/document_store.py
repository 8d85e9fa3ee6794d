"""Whole-document JSON persistence with named top-level sections."""

import copy
import json
import os
import threading
from enum import StrEnum
from pathlib import Path
from typing import Any

from loguru import logger

from casebook.config import DEFAULT_PREFERENCES
from casebook.errors import NotInitializedError

SECTION_CASES = "cases"
SECTION_COLLECTIONS = "collections"
SECTION_LINKS = "case_collections"
SECTION_PREFERENCES = "preferences"
SECTION_ID_SEQUENCES = "id_sequences"


class StoreHealth(StrEnum):
    """Outcome of DocumentStore.load()."""

    CLEAN = "clean"
    CREATED = "created"
    RECOVERED_WITH_DEFAULTS = "recovered_with_defaults"


def default_document() -> dict[str, Any]:
    """Return a fresh copy of the document written on first run."""
    return {
        SECTION_CASES: [],
        SECTION_COLLECTIONS: [],
        SECTION_LINKS: [],
        SECTION_PREFERENCES: copy.deepcopy(DEFAULT_PREFERENCES),
        "ai_usage": [],
        "practice_sessions": [],
        SECTION_ID_SEQUENCES: {},
    }


def _section_default(name: str) -> Any:
    defaults = default_document()
    return defaults.get(name, [])


class DocumentStore:
    """Persist one JSON document and expose its top-level sections.

    Every put_section() rewrites the entire file. Reads return deep copies, so
    callers follow a read-modify-write cycle and never alias the in-memory
    document. Writes are serialized by a lock, but there is no transaction
    spanning several sections: an operation touching more than one section
    can be interrupted half way.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._data: dict[str, Any] | None = None
        self._write_lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._data is not None

    def load(self) -> StoreHealth:
        """Read the backing file, creating or recovering it if necessary.

        A corrupt file is replaced by the default document, and a known
        section of the wrong type is replaced by its default. The discarded
        contents are lost; the returned StoreHealth lets the caller report it.
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("Library file {} not found, creating it", self.path)
            self._data = default_document()
            self._write()
            return StoreHealth.CREATED
        except (OSError, UnicodeDecodeError):
            logger.warning("Cannot read library file {}, starting empty", self.path, exc_info=True)
            return self._recover()

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Library file {} is not valid JSON ({}), starting empty", self.path, e)
            return self._recover()
        if not isinstance(data, dict):
            logger.warning(
                "Library file {} holds {} instead of an object, starting empty",
                self.path, type(data).__name__,
            )
            return self._recover()

        defaults = default_document()
        missing = [name for name in defaults if name not in data]
        for name in missing:
            data[name] = defaults[name]
        # A known section holding the wrong JSON type is reset on its own.
        mistyped = [
            name
            for name, default in defaults.items()
            if name not in missing and not isinstance(data[name], type(default))
        ]
        for name in mistyped:
            logger.warning(
                "Section {!r} in {} holds {} instead of {}, resetting it",
                name, self.path, type(data[name]).__name__, type(defaults[name]).__name__,
            )
            data[name] = defaults[name]
        self._data = data
        if missing:
            logger.debug("Initialized missing sections: {}", ", ".join(missing))
        if missing or mistyped:
            self._write()
        return StoreHealth.RECOVERED_WITH_DEFAULTS if mistyped else StoreHealth.CLEAN

    def _recover(self) -> StoreHealth:
        self._data = default_document()
        self._write()
        return StoreHealth.RECOVERED_WITH_DEFAULTS

    def _require_data(self) -> dict[str, Any]:
        if self._data is None:
            msg = f"Document store {str(self.path)!r} used before load()"
            raise NotInitializedError(msg)
        return self._data

    def get_section(self, name: str) -> Any:
        """Return a copy of the named section, initializing it if absent."""
        data = self._require_data()
        if name not in data:
            data[name] = _section_default(name)
        return copy.deepcopy(data[name])

    def put_section(self, name: str, value: Any) -> None:
        """Replace the named section and persist the whole document."""
        data = self._require_data()
        with self._write_lock:
            data[name] = copy.deepcopy(value)
            self._write()

    def _write(self) -> None:
        # Temp file plus os.replace: the library file is never partially written.
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        contents = json.dumps(self._data, indent=2, ensure_ascii=False) + "\n"
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(contents)
        os.replace(tmp_path, self.path)
