from fastapi import APIRouter, Depends, Request

from bug_journal.dependencies import get_current_user
from bug_journal.middleware.rate_limit import suggestion_limiter
from bug_journal.models import User
from bug_journal.schemas.ai import SuggestionRequest, SuggestionResponse, SummaryRequest, SummaryResponse
from bug_journal.services.suggestions import SuggestionService, get_suggestion_service

router = APIRouter(prefix="/api/ai", tags=["ai"])


@router.post("/suggestion", response_model=SuggestionResponse)
@suggestion_limiter
async def get_suggestion(
    request: Request,
    data: SuggestionRequest,
    service: SuggestionService = Depends(get_suggestion_service),
    user: User = Depends(get_current_user),
) -> SuggestionResponse:
    result = await service.suggest(data.description, data.steps_to_reproduce, data.title)
    return SuggestionResponse(
        suggestion=result.suggestion,
        explanation=result.explanation,
        resources=list(result.resources),
    )


@router.post("/summary", response_model=SummaryResponse)
@suggestion_limiter
async def get_summary(
    request: Request,
    data: SummaryRequest,
    service: SuggestionService = Depends(get_suggestion_service),
    user: User = Depends(get_current_user),
) -> SummaryResponse:
    return SummaryResponse(summary=await service.summarize(data.description))
