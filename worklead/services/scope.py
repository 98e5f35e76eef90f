# worklead/services/scope.py
from __future__ import annotations

from dataclasses import dataclass

from worklead.database.models import ScopeType


@dataclass(frozen=True, slots=True)
class Scope:
    """
    Aggregation boundary of a leaderboard.
    company_id is always set (snapshots and achievements are company-owned).
    """
    type: ScopeType
    id: int
    company_id: int
    department_id: int | None = None

    @classmethod
    def company(cls, company_id: int, *, department_id: int | None = None) -> "Scope":
        return cls(type=ScopeType.COMPANY, id=company_id, company_id=company_id, department_id=department_id)

    @classmethod
    def project(cls, project_id: int, *, company_id: int) -> "Scope":
        return cls(type=ScopeType.PROJECT, id=project_id, company_id=company_id)

    @classmethod
    def sub_project(cls, sub_project_id: int, *, company_id: int) -> "Scope":
        return cls(type=ScopeType.SUB_PROJECT, id=sub_project_id, company_id=company_id)

    def __str__(self) -> str:
        return f"{self.type.value}:{self.id}"
