import asyncio

from fastapi import APIRouter, Depends

from app.core.dependencies import get_suggestion_service
from app.middleware.auth_middleware import get_current_user_id
from app.services.suggestion_service import SuggestionService

router = APIRouter()


@router.get("/news")
async def get_news_suggestions(
    user_id: str = Depends(get_current_user_id),
    service: SuggestionService = Depends(get_suggestion_service),
):
    """Trending claims worth checking; a fixed list when Gemini is unavailable."""
    loop = asyncio.get_event_loop()
    suggestions = await loop.run_in_executor(None, service.get_news_suggestions)
    return {"suggestions": suggestions}
