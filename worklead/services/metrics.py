# worklead/services/metrics.py
from __future__ import annotations

from typing import Protocol

from worklead.services.periods import PeriodWindow
from worklead.services.scope import Scope
from worklead.services.scoring import UserMetrics


class MetricsReader(Protocol):
    """
    Read-only view of raw activity.
    Both methods raise NotFoundError when the scope does not exist;
    get_user_metrics also raises it for a user outside the scope.
    """

    async def list_scope_users(self, scope: Scope) -> list[int]: ...

    async def get_user_metrics(self, scope: Scope, user_id: int, window: PeriodWindow) -> UserMetrics: ...
