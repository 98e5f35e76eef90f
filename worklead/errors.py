"""
Exception hierarchy for the leaderboard engine.

Every error carries a machine-readable `code` so an API layer can branch on
it without parsing English messages.
"""
from __future__ import annotations

from typing import Any


class LeaderboardError(Exception):
    """Base class for all engine-level errors."""
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFoundError(LeaderboardError):
    code = "NOT_FOUND"

    def __init__(self, kind: str, ident: Any):
        super().__init__(
            message=f"{kind.capitalize()} {ident} not found.",
            details={"kind": kind, "id": ident},
        )
        self.kind = kind
        self.ident = ident


class InvalidWindowError(LeaderboardError):
    code = "INVALID_WINDOW"

    def __init__(self, message: str, **details: Any):
        super().__init__(message=message, details={k: str(v) for k, v in details.items()})


class PartialReadFailure(LeaderboardError):
    """One user's metrics could not be read; the user is left out of the ranking."""
    code = "PARTIAL_READ_FAILURE"

    def __init__(self, user_id: int, reason: str):
        super().__init__(
            message=f"Metrics read failed for user {user_id}: {reason}",
            details={"user_id": user_id, "reason": reason},
        )
        self.user_id = user_id


class PersistenceConflictError(LeaderboardError):
    """A concurrent writer kept winning the snapshot replace for the same key."""
    code = "PERSISTENCE_CONFLICT"

    def __init__(self, key: tuple):
        super().__init__(
            message=f"Snapshot write for {key!r} conflicted with a concurrent writer.",
            details={"key": [str(k) for k in key]},
        )
        self.key = key
