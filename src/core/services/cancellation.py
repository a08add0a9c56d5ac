"""Per-session cancellation token.

Every load, refetch and poll tick holds the token of the session generation
that issued it. Once the generation is superseded (reload, identifier change,
close) the token is cancelled and any later write guarded by it is a no-op.
"""

from __future__ import annotations

import itertools

_generation = itertools.count(1)


class CancellationToken:
    __slots__ = ("generation", "_cancelled")

    def __init__(self) -> None:
        self.generation = next(_generation)
        self._cancelled = False

    @property
    def active(self) -> bool:
        return not self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "active"
        return f"CancellationToken(generation={self.generation}, {state})"
