import logging
from typing import Dict

from fastapi import APIRouter, Depends

from app.core.dependencies import get_settings_repository
from app.middleware.auth_middleware import get_current_user_id, require_admin
from app.models.quota import GlobalLimits, GlobalLimitsUpdate
from app.repository.settings_repository import SettingsRepository

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=GlobalLimits)
async def get_settings(
    user_id: str = Depends(get_current_user_id),
    repository: SettingsRepository = Depends(get_settings_repository),
):
    """Current global daily limits (0 = unlimited)."""
    return repository.get_limits()


@router.patch("", response_model=GlobalLimits)
async def update_settings(
    update: GlobalLimitsUpdate,
    admin: Dict = Depends(require_admin),
    repository: SettingsRepository = Depends(get_settings_repository),
):
    """
    Change the global daily limits. Applies on the next quota check.

    Args:
        update: freeDailyLimit and/or premiumDailyLimit
    """
    limits = repository.update_limits(update)
    logger.info(
        "Global limits changed by %s: free=%d premium=%d",
        admin.get("email"), limits.free_daily_limit, limits.premium_daily_limit
    )
    return limits
