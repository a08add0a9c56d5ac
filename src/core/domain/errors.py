"""Domain errors.

Collaborators (HTTP adapters, fakes in tests) report every failure as an
`ApiError` so the session can classify it without knowing about httpx.
"""

from __future__ import annotations

from typing import Any


class ApiError(Exception):
    """A classified collaborator failure.

    `status` is the HTTP-like status code, or `None` for transport failures
    (DNS, timeouts, refused connections).
    """

    def __init__(self, message: str, *, status: int | None = None, payload: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.payload = payload

    @property
    def is_not_found(self) -> bool:
        return self.status == 404

    def __repr__(self) -> str:
        return f"ApiError(status={self.status!r}, message={str(self)!r})"
