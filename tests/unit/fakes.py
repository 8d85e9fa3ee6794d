"""Fake HTTP objects for testing bundle downloads."""

import json
from collections.abc import Iterator
from typing import Any

import requests


class FakeResponse:
    """Minimal stand-in for a streamed requests.Response.

    Records how many body bytes were handed out and whether it was closed.
    """

    def __init__(
        self,
        body: Any = None,
        *,
        status_code: int = 200,
        reason: str = "OK",
        headers: dict[str, str] | None = None,
    ) -> None:
        self.status_code = status_code
        self.reason = reason
        self.headers = headers or {}
        if isinstance(body, bytes):
            self.content = body
        else:
            self.content = json.dumps(body).encode()
        self.bytes_read = 0
        self.closed = False

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            msg = f"{self.status_code} {self.reason}"
            raise requests.HTTPError(msg, response=self)  # type: ignore[arg-type]

    def iter_content(self, chunk_size: int = 1) -> Iterator[bytes]:
        for start in range(0, len(self.content), chunk_size):
            chunk = self.content[start : start + chunk_size]
            self.bytes_read += len(chunk)
            yield chunk

    def close(self) -> None:
        self.closed = True


class FakeSession:
    """In-memory fake for requests.Session.

    Returns a predefined response (or raises a predefined error) and records
    every call for assertions.
    """

    def __init__(self, response: FakeResponse | None = None, *, error: Exception | None = None):
        self.response = response or FakeResponse({})
        self.error = error
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response
