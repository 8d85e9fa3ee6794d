"""Protocols for dependency injection in the casebook data layer."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class StoreProtocol(Protocol):
    """Protocol for section-based document stores used by the repositories."""

    def get_section(self, name: str) -> Any:
        """Return a copy of the named top-level section."""
        ...

    def put_section(self, name: str, value: Any) -> None:
        """Replace the named section and persist the whole document."""
        ...


@runtime_checkable
class HttpSessionProtocol(Protocol):
    """Protocol for the HTTP session used to fetch remote bundles."""

    def get(self, url: str, **kwargs: Any) -> Any:
        """Issue a GET request, returning a requests-style response."""
        ...
