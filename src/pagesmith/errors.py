"""Error taxonomy shared by every pagesmith component.

Context acquisition converts ``TransientIOError`` into phase results and
never lets it escape a run.  Everything else is raised to the caller before
or inside the write transaction, so a rejected operation leaves no partial
state behind.
"""

from __future__ import annotations


class PagesmithError(Exception):
    """Base error for all pagesmith failures."""


class TransientIOError(PagesmithError):
    """A fetch or timeout failure inside one acquisition phase."""


class ValidationError(PagesmithError):
    """Input was rejected; ``items`` names exactly what was invalid or missing."""

    def __init__(self, message: str, items: list[str] | None = None) -> None:
        super().__init__(message)
        self.items: list[str] = list(items or [])


class StateConflictError(PagesmithError):
    """A lifecycle transition was requested from the wrong current state."""

    def __init__(self, current: str, requested: str, item_id: str = "") -> None:
        subject = f"content item {item_id!r}" if item_id else "content item"
        super().__init__(
            f"Cannot move {subject} to {requested!r}: current status is {current!r}"
        )
        self.current = current
        self.requested = requested
        self.item_id = item_id


class OwnershipError(PagesmithError):
    """The acting owner does not own the target, or the domain is unverified."""


class ConflictError(PagesmithError):
    """The public address is already taken by another published item."""


class NotFoundError(PagesmithError):
    """A referenced record does not exist."""
