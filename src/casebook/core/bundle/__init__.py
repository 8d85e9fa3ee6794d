"""Bundle export/import."""

from casebook.core.bundle.codec import (
    BUNDLE_VERSION,
    BundleFormat,
    DecodedImport,
    ImportedCollection,
    decode,
    decode_text,
    encode,
)
from casebook.core.bundle.importer import ImportStats, fetch_bundle, import_decoded, load_bundle_file

__all__ = [
    "BUNDLE_VERSION",
    "BundleFormat",
    "DecodedImport",
    "ImportStats",
    "ImportedCollection",
    "decode",
    "decode_text",
    "encode",
    "fetch_bundle",
    "import_decoded",
    "load_bundle_file",
]
