import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from bug_journal.config import settings
from bug_journal.database import get_db
from bug_journal.dependencies import get_current_user
from bug_journal.models import User
from bug_journal.schemas.file import IssueFileResponse
from bug_journal.services import files as files_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["files"])


@router.post("/upload", response_model=IssueFileResponse, status_code=201)
async def upload_file(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> IssueFileResponse:
    content = await file.read(settings.upload_max_bytes + 1)
    if not content:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(content) > settings.upload_max_bytes:
        logger.warning("Upload too large", extra={"user_id": user.id, "upload_name": file.filename})
        raise HTTPException(status_code=413, detail="File too large")
    stored = await files_service.store_upload(
        db, user.id, file.filename or "upload", file.content_type, content
    )
    await db.commit()
    return IssueFileResponse.model_validate(stored)


@router.get("/files/{file_id}")
async def download_file(
    file_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Response:
    stored = await files_service.get_file(db, file_id, with_content=True)
    if stored is None:
        raise HTTPException(status_code=404, detail="File not found")
    if stored.user_id != user.id:
        raise HTTPException(status_code=403, detail="Forbidden")
    return Response(
        content=stored.content,
        media_type=stored.mime_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(stored.original_name)}"},
    )
