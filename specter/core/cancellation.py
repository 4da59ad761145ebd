"""Cooperative cancellation for fetches and generation streams."""

from specter.core.exceptions import OperationCancelled


class CancellationToken:
    """Flag checked by long-running operations at each await point.

    The token never interrupts an await that is already suspended; the
    operation observes it the next time it resumes.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str = "cancelled by caller") -> None:
        self._cancelled = True
        self.reason = reason

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise OperationCancelled(self.reason or "Operation cancelled")
