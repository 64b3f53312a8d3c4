import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.core.dependencies import (
    get_auth_service,
    get_fact_check_repository,
    get_quota_gate,
    get_user_repository,
)
from app.core.exceptions import AuthenticationRequired, InvalidInput
from app.middleware.auth_middleware import get_current_user_id
from app.models.quota import PlanTier
from app.models.user import ChangePasswordRequest, ProfileResponse, ProfileUpdateRequest, QuotaSnapshot
from app.repository.fact_check_repository import FactCheckRepository
from app.repository.user_repository import UserRepository
from app.services.auth_service import AuthService, to_user_response
from app.services.quota_service import QuotaGate

logger = logging.getLogger(__name__)

router = APIRouter()


class UpgradeRequest(BaseModel):
    plan: PlanTier = PlanTier.MONTHLY


def build_profile(user_id: str, user_repository: UserRepository, quota_gate: QuotaGate) -> ProfileResponse:
    user_doc = user_repository.find_by_id(user_id)
    if not user_doc:
        raise AuthenticationRequired("User not found")

    decision = quota_gate.snapshot(user_id)
    return ProfileResponse(
        user=to_user_response(user_doc),
        quota=QuotaSnapshot(
            plan=decision.state.plan,
            daily_requests_count=decision.state.daily_requests_count,
            daily_limit=decision.limit,
            unlimited=decision.unlimited,
            remaining=decision.remaining,
        ),
    )


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    user_id: str = Depends(get_current_user_id),
    user_repository: UserRepository = Depends(get_user_repository),
    quota_gate: QuotaGate = Depends(get_quota_gate),
):
    """
    Current user with today's quota usage

    Returns:
        User data and quota snapshot
    """
    return build_profile(user_id, user_repository, quota_gate)


@router.patch("/profile", response_model=ProfileResponse)
async def update_profile(
    request: ProfileUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    user_repository: UserRepository = Depends(get_user_repository),
    quota_gate: QuotaGate = Depends(get_quota_gate),
):
    """
    Update the current user's name and/or photo URL

    Raises:
        InvalidInput: No field to change
    """
    changes = request.model_dump(exclude_none=True)
    if not changes:
        raise InvalidInput("profile", "nothing to update")

    if user_repository.update_profile(user_id, changes) is None:
        raise AuthenticationRequired("User not found")
    return build_profile(user_id, user_repository, quota_gate)


@router.post("/change-password")
async def change_password(
    request: ChangePasswordRequest,
    user_id: str = Depends(get_current_user_id),
    auth_service: AuthService = Depends(get_auth_service),
):
    auth_service.change_password(user_id, request.current_password, request.new_password)
    return {"message": "Password changed"}


@router.delete("/account")
async def delete_account(
    user_id: str = Depends(get_current_user_id),
    user_repository: UserRepository = Depends(get_user_repository),
    fact_check_repository: FactCheckRepository = Depends(get_fact_check_repository),
):
    """
    Delete the current user and their whole fact-check history
    """
    deleted = fact_check_repository.delete_all(user_id)
    if not user_repository.delete_user(user_id):
        raise AuthenticationRequired("User not found")

    logger.info("Deleted account %s with %d fact-checks", user_id, deleted)
    return {"message": "Account deleted", "deleted_fact_checks": deleted}


@router.post("/premium/upgrade", response_model=ProfileResponse)
async def upgrade_to_premium(
    request: Optional[UpgradeRequest] = None,
    user_id: str = Depends(get_current_user_id),
    user_repository: UserRepository = Depends(get_user_repository),
    quota_gate: QuotaGate = Depends(get_quota_gate),
):
    """
    Switch the user to a paid plan. Placeholder until payments are wired in.

    Args:
        request: Target plan, monthly by default
    """
    plan = request.plan if request else PlanTier.MONTHLY
    if plan == PlanTier.FREE:
        raise InvalidInput("plan", "upgrade target must be a paid plan")

    if user_repository.set_plan(user_id, plan) is None:
        raise AuthenticationRequired("User not found")

    logger.info("User %s upgraded to %s", user_id, plan.value)
    return build_profile(user_id, user_repository, quota_gate)
