"""Pagination controller for one paginated section.

`update()` is the only path that asks the owning section to refetch; server
responses go through `replace()`, which never notifies.
"""

from __future__ import annotations

from typing import Callable

from core.domain.models import PaginationState

PaginationListener = Callable[[PaginationState], None]


class PaginationController:
    """Holds `{current_page, page_size}` plus server totals for a section."""

    def __init__(self, initial: PaginationState | None = None) -> None:
        self._state = initial or PaginationState()
        self._listener: PaginationListener | None = None

    @property
    def state(self) -> PaginationState:
        return self._state

    def subscribe(self, listener: PaginationListener | None) -> None:
        self._listener = listener

    def update(self, *, current_page: int | None = None, page_size: int | None = None) -> bool:
        """Merge a partial change; notify the listener if anything changed.

        `None` and `0` mean "absent" (uninitialized UI state) and are ignored.
        Returns whether the listener was notified.
        """

        changes: dict[str, int] = {}
        if current_page and current_page != self._state.current_page:
            changes["current_page"] = current_page
        if page_size and page_size != self._state.page_size:
            changes["page_size"] = page_size
        if not changes:
            return False

        # Validate through the model so negative values are rejected.
        self._state = PaginationState.model_validate({**self._state.model_dump(), **changes})
        if self._listener is not None:
            self._listener(self._state)
        return True

    def replace(self, state: PaginationState) -> None:
        """Store the pagination reported by a response. Does not notify."""

        self._state = state
