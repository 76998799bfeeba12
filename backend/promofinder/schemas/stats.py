"""Usage statistics schemas."""

from typing import Any, Dict, List

from pydantic import BaseModel


class ProviderUsage(BaseModel):
    provider: str
    requestsToday: int
    requestsRemaining: int
    dailyLimit: int
    failuresToday: int = 0


class UsageStatsResponse(BaseModel):
    """Read-only snapshot of source budgets, caches and stored offers."""

    providers: List[ProviderUsage]
    resetsInSeconds: int
    cache: Dict[str, Any] = {}
    database: Dict[str, Any] = {}
    validation: Dict[str, Any] = {}
