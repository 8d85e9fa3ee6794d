"""Configuration constants for the casebook library."""

import os
from pathlib import Path
from typing import Any

__version__ = "0.3.0"

# Directory with data. First directory which is found is used.
DATA_DIRECTORIES: list[Path] = [
    Path("~/.local/share/casebook").expanduser(),
    Path("~/.casebook").expanduser(),
]

# Overrides DATA_DIRECTORIES when set.
DATA_DIR_ENV = "CASEBOOK_DATA_DIR"

DATABASE_FILENAME = "library.json"
EXPORTS_DIRNAME = "exports"

# Written into the preferences section of a fresh library file.
DEFAULT_PREFERENCES: dict[str, Any] = {
    "theme": "light",
    "default_ai_provider": "openai",
    "default_ai_model": "gpt-4",
    "api_keys": {},
    "default_generation_settings": {
        "domain": "Business",
        "complexity": "Intermediate",
        "scenario_type": "Problem-solving",
        "length_preference": "Medium",
    },
}

# Remote bundle downloads.
FETCH_TIMEOUT: float = 15.0
FETCH_MAX_BYTES: int = 50 * 1024 * 1024
USER_AGENT = f"casebook/{__version__}"


def resolve_data_directory() -> Path:
    """Return the data directory: env override, else first existing candidate.

    Falls back to the first candidate when none exists yet, so a fresh
    install creates its library there.
    """
    override = os.environ.get(DATA_DIR_ENV)
    if override:
        return Path(override).expanduser()
    for candidate in DATA_DIRECTORIES:
        if candidate.is_dir():
            return candidate
    return DATA_DIRECTORIES[0]


def resolve_database_path(data_dir: Path | None = None) -> Path:
    """Return the path of the library JSON file inside data_dir."""
    return (data_dir or resolve_data_directory()) / DATABASE_FILENAME
