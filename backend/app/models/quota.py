from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from app.models.verdict import CamelModel


class PlanTier(str, Enum):
    FREE = "free"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class QuotaState(CamelModel):
    """Per-user daily counter."""
    daily_requests_count: int = Field(default=0, ge=0)
    last_request_date: datetime
    plan: PlanTier = PlanTier.FREE


class GlobalLimits(CamelModel):
    """Shared daily ceilings, 0 meaning unlimited."""
    free_daily_limit: int = Field(..., ge=0)
    premium_daily_limit: int = Field(..., ge=0)

    def limit_for(self, plan: PlanTier) -> int:
        if plan != PlanTier.FREE:
            return self.premium_daily_limit
        return self.free_daily_limit


class GlobalLimitsUpdate(CamelModel):
    free_daily_limit: Optional[int] = Field(default=None, ge=0)
    premium_daily_limit: Optional[int] = Field(default=None, ge=0)


class QuotaDecision(BaseModel):
    allowed: bool
    limit: int
    unlimited: bool
    reset_required: bool
    state: QuotaState

    @property
    def remaining(self) -> Optional[int]:
        if self.unlimited:
            return None
        return max(self.limit - self.state.daily_requests_count, 0)
