"""Exceptions raised by the casebook data layer."""


class CasebookError(Exception):
    """Base class for all casebook errors."""


class NotInitializedError(CasebookError, RuntimeError):
    """The document store was used before load() completed."""


class NotFoundError(CasebookError, LookupError):
    """An update or lookup targeted an id that does not exist."""


class MalformedInputError(CasebookError, ValueError):
    """Import input could not be classified or held no valid records."""


class HierarchyCycleError(CasebookError, ValueError):
    """A collection parent assignment would create a cycle."""


class BundleFetchError(CasebookError):
    """A remote bundle could not be downloaded."""
