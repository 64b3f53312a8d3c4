import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, File, UploadFile, Form, Depends, Query, status

from app.core.dependencies import (
    get_fact_check_repository,
    get_image_service,
    get_quota_gate,
    get_user_repository,
    get_verification_pipeline,
)
from app.core.exceptions import InvalidInput, NotFound
from app.middleware.auth_middleware import get_current_user_id
from app.models.verdict import (
    FactCheckPage,
    Pagination,
    StoredFactCheck,
    VerdictRecord,
    VerdictStats,
)
from app.repository.fact_check_repository import FactCheckRepository
from app.repository.user_repository import UserRepository
from app.services.image_service import ImageService
from app.services.quota_service import QuotaGate
from app.services.verification_pipeline import VerificationPipeline

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_PAGE_SIZE = 100


@router.post("/verify", response_model=VerdictRecord, status_code=status.HTTP_201_CREATED)
async def verify_claim(
    claim: Optional[str] = Form(None),
    image_context: Optional[str] = Form(None),
    image_url: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    user_id: str = Depends(get_current_user_id),
    quota_gate: QuotaGate = Depends(get_quota_gate),
    pipeline: VerificationPipeline = Depends(get_verification_pipeline),
    image_service: ImageService = Depends(get_image_service),
):
    """
    Verify a claim and/or an image (uploaded file or remote URL).

    The request is counted against the daily quota before the reasoning
    service is called, and is not refunded if that call fails.

    Returns:
        The VerdictRecord; it is not stored, clients save it via POST /api/fact-checks

    Raises:
        InvalidInput (400), AuthenticationRequired (401),
        QuotaExceeded (403), UpstreamUnavailable (502)
    """
    claim = (claim or "").strip()
    image_url = (image_url or "").strip() or None
    if not claim and file is None and image_url is None:
        raise InvalidInput("claim", "a claim or an image is required")

    # Run blocking work in the threadpool to keep the event loop free
    loop = asyncio.get_event_loop()

    image = None
    if file is not None:
        file_content = await file.read()
        image = await loop.run_in_executor(
            None, image_service.from_upload, file_content, file.content_type, file.filename
        )
    elif image_url is not None:
        image = await loop.run_in_executor(None, image_service.from_url, image_url)

    if image is not None and not (image_context or "").strip():
        image_context = image_service.extract_metadata(image)

    await loop.run_in_executor(None, quota_gate.check_and_consume, user_id)

    return await loop.run_in_executor(
        None, pipeline.verify, claim, image, image_context, image_url
    )


@router.get("/stats/summary", response_model=VerdictStats)
async def get_stats(
    user_id: str = Depends(get_current_user_id),
    repository: FactCheckRepository = Depends(get_fact_check_repository),
):
    """Count the user's saved verdicts per verdict value."""
    return repository.stats(user_id)


@router.get("", response_model=FactCheckPage)
async def list_fact_checks(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    user_id: str = Depends(get_current_user_id),
    repository: FactCheckRepository = Depends(get_fact_check_repository),
):
    """
    Paginated history, newest first.

    Args:
        page: 1-based page number
        limit: Page size, capped at 100
    """
    limit = min(limit, MAX_PAGE_SIZE)
    fact_checks, total = repository.list(user_id, page=page, limit=limit)
    return FactCheckPage(
        fact_checks=fact_checks,
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=repository.total_pages(total, limit),
        ),
    )


@router.get("/{fact_check_id}", response_model=StoredFactCheck)
async def get_fact_check(
    fact_check_id: str,
    user_id: str = Depends(get_current_user_id),
    repository: FactCheckRepository = Depends(get_fact_check_repository),
):
    fact_check = repository.get(user_id, fact_check_id)
    if fact_check is None:
        raise NotFound("Fact-check", fact_check_id)
    return fact_check


@router.post("", response_model=StoredFactCheck, status_code=status.HTTP_201_CREATED)
async def save_fact_check(
    record: VerdictRecord,
    user_id: str = Depends(get_current_user_id),
    repository: FactCheckRepository = Depends(get_fact_check_repository),
    user_repository: UserRepository = Depends(get_user_repository),
):
    """
    Store a verdict in the user's history.

    Args:
        record: VerdictRecord as returned by /verify

    Returns:
        The stored record with its server-assigned id
    """
    stored = repository.save(user_id, record)
    user_repository.adjust_fact_checks_count(user_id, 1)
    logger.info("Saved fact-check %s for user %s", stored.id, user_id)
    return stored


@router.delete("/{fact_check_id}")
async def delete_fact_check(
    fact_check_id: str,
    user_id: str = Depends(get_current_user_id),
    repository: FactCheckRepository = Depends(get_fact_check_repository),
    user_repository: UserRepository = Depends(get_user_repository),
):
    if not repository.delete(user_id, fact_check_id):
        raise NotFound("Fact-check", fact_check_id)
    user_repository.adjust_fact_checks_count(user_id, -1)
    return {"message": "Fact-check deleted"}


@router.delete("")
async def clear_fact_checks(
    user_id: str = Depends(get_current_user_id),
    repository: FactCheckRepository = Depends(get_fact_check_repository),
    user_repository: UserRepository = Depends(get_user_repository),
):
    """Delete the user's whole history."""
    deleted = repository.delete_all(user_id)
    user_repository.reset_fact_checks_count(user_id)
    return {"message": f"{deleted} fact-checks deleted", "deleted": deleted}
