"""Uploaded attachments.

Uploads are stored first, unattached, and moved onto an issue later by
rewriting their ``issue_id``.
"""

import logging

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import undefer

from bug_journal.models import IssueFile

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


async def store_upload(
    db: AsyncSession,
    user_id: int,
    name: str,
    mime_type: str | None,
    content: bytes,
) -> IssueFile:
    issue_file = IssueFile(
        user_id=user_id,
        original_name=name,
        size=len(content),
        mime_type=mime_type or DEFAULT_MIME_TYPE,
        content=content,
    )
    db.add(issue_file)
    await db.flush()
    logger.info("Stored upload", extra={"user_id": user_id, "file_id": issue_file.id, "size": issue_file.size})
    return issue_file


async def get_file(db: AsyncSession, file_id: int, with_content: bool = False) -> IssueFile | None:
    q = select(IssueFile).where(IssueFile.id == file_id)
    if with_content:
        q = q.options(undefer(IssueFile.content))
    result = await db.execute(q)
    return result.scalar_one_or_none()


async def get_files_by_issue(db: AsyncSession, issue_id: int) -> list[IssueFile]:
    result = await db.execute(
        select(IssueFile).where(IssueFile.issue_id == issue_id).order_by(IssueFile.id)
    )
    return list(result.scalars().all())


async def attach_files(
    db: AsyncSession, user_id: int, issue_id: int, file_ids: list[int]
) -> list[IssueFile]:
    """Point the given uploads at ``issue_id``.

    Only files uploaded by ``user_id`` that are unattached (or already on this
    issue) move; anything else is skipped.
    """
    if not file_ids:
        return []
    result = await db.execute(
        select(IssueFile)
        .where(
            IssueFile.id.in_(file_ids),
            IssueFile.user_id == user_id,
            or_(IssueFile.issue_id.is_(None), IssueFile.issue_id == issue_id),
        )
        .order_by(IssueFile.id)
    )
    files = list(result.scalars().all())
    for f in files:
        f.issue_id = issue_id
    await db.flush()
    return files
