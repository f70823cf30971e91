"""Per-request cancellation handles.

A view-state object owns at most one CancelSource at a time. Acquiring a new
source for the same state cancels the previous one, so a superseded request
notices it has been cancelled when its response comes back.

Usage:
    if state.cancel_source:
        state.cancel_source.cancel("new search started")
    state.cancel_source = CancelSource()
    client.get(url, cancel_token=state.cancel_source.token)
"""
from typing import Optional


class CancelToken:
    """Read-only view of a CancelSource, handed to the HTTP client."""

    def __init__(self) -> None:
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self.reason is not None


class CancelSource:
    """Owner side of a cancellation handle."""

    def __init__(self) -> None:
        self.token = CancelToken()

    def cancel(self, reason: str = "cancelled") -> None:
        # First reason wins
        if self.token.reason is None:
            self.token.reason = reason

    def __repr__(self) -> str:
        return f"CancelSource(reason={self.token.reason!r})"
