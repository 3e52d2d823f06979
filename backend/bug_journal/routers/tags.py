from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bug_journal.database import get_db
from bug_journal.dependencies import get_current_user
from bug_journal.models import User
from bug_journal.schemas.tag import TagCreate, TagResponse
from bug_journal.services import tags as tags_service

router = APIRouter(prefix="/api/tags", tags=["tags"])


@router.get("", response_model=list[TagResponse])
async def list_tags(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> list[TagResponse]:
    tags = await tags_service.get_all_tags(db)
    return [TagResponse.model_validate(t) for t in tags]


@router.post("", response_model=TagResponse, status_code=201)
async def create_tag(
    data: TagCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> TagResponse:
    """Find-or-create: an existing name returns the stored tag."""
    tag = await tags_service.create_tag(db, data.name, data.color)
    await db.commit()
    return TagResponse.model_validate(tag)
