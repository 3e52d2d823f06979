"""Issue aggregation: an issue row composed with its tags, links and files."""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from bug_journal.models import Issue, IssueFile, IssueLink, IssueTag, Tag
from bug_journal.schemas.issue import parse_issue_date
from bug_journal.services import files as files_service

logger = logging.getLogger(__name__)

ISSUE_FIELDS = ("title", "description", "steps_to_reproduce", "solution", "status", "date")


@dataclass
class IssueDetails:
    issue: Issue
    tags: list[Tag] = field(default_factory=list)
    links: list[IssueLink] = field(default_factory=list)
    files: list[IssueFile] = field(default_factory=list)


async def _attach_details(db: AsyncSession, issues: list[Issue]) -> list[IssueDetails]:
    """Load tags, links and files for a batch of issues, one query per table."""
    if not issues:
        return []
    issue_ids = [i.id for i in issues]

    tags_by_issue: dict[int, list[Tag]] = defaultdict(list)
    tag_rows = await db.execute(
        select(IssueTag.issue_id, Tag)
        .join(Tag, Tag.id == IssueTag.tag_id)
        .where(IssueTag.issue_id.in_(issue_ids))
        .order_by(Tag.name)
    )
    for issue_id, tag in tag_rows.all():
        tags_by_issue[issue_id].append(tag)

    links_by_issue: dict[int, list[IssueLink]] = defaultdict(list)
    link_rows = await db.execute(
        select(IssueLink).where(IssueLink.issue_id.in_(issue_ids)).order_by(IssueLink.id)
    )
    for link in link_rows.scalars().all():
        links_by_issue[link.issue_id].append(link)

    files_by_issue: dict[int, list[IssueFile]] = defaultdict(list)
    file_rows = await db.execute(
        select(IssueFile).where(IssueFile.issue_id.in_(issue_ids)).order_by(IssueFile.id)
    )
    for f in file_rows.scalars().all():
        files_by_issue[f.issue_id].append(f)

    return [
        IssueDetails(
            issue=i,
            tags=tags_by_issue.get(i.id, []),
            links=links_by_issue.get(i.id, []),
            files=files_by_issue.get(i.id, []),
        )
        for i in issues
    ]


async def get_issue(db: AsyncSession, issue_id: int) -> IssueDetails | None:
    result = await db.execute(select(Issue).where(Issue.id == issue_id))
    issue = result.scalar_one_or_none()
    if issue is None:
        return None
    details = await _attach_details(db, [issue])
    return details[0]


async def get_issues_by_user(db: AsyncSession, user_id: int) -> list[IssueDetails]:
    """All issues of a user, most recent day first, newest entry first within a day."""
    result = await db.execute(
        select(Issue)
        .where(Issue.user_id == user_id)
        .order_by(Issue.date.desc(), Issue.created_at.desc(), Issue.id.desc())
    )
    return await _attach_details(db, list(result.scalars().all()))


async def get_issues_by_user_and_date(
    db: AsyncSession, user_id: int, day: date | str
) -> list[IssueDetails]:
    """Issues whose calendar ``date`` equals ``day`` exactly.

    ``created_at`` plays no part here, so an entry logged just after midnight
    for the previous day stays on the previous day.
    """
    if isinstance(day, str):
        day = parse_issue_date(day)
    result = await db.execute(
        select(Issue)
        .where(Issue.user_id == user_id, Issue.date == day)
        .order_by(Issue.created_at.desc(), Issue.id.desc())
    )
    return await _attach_details(db, list(result.scalars().all()))


async def create_issue(
    db: AsyncSession,
    user_id: int,
    data: dict[str, Any],
    file_ids: list[int] | None = None,
) -> Issue:
    values = {k: v for k, v in data.items() if k in ISSUE_FIELDS and v is not None}
    issue = Issue(user_id=user_id, **values)
    db.add(issue)
    await db.flush()
    if file_ids:
        attached = await files_service.attach_files(db, user_id, issue.id, file_ids)
        logger.info(
            "Attached uploads to new issue",
            extra={"issue_id": issue.id, "requested": len(file_ids), "attached": len(attached)},
        )
    return issue


async def update_issue(db: AsyncSession, issue_id: int, changes: dict[str, Any]) -> Issue | None:
    issue = await db.get(Issue, issue_id)
    if issue is None:
        return None
    for key, value in changes.items():
        if key in ISSUE_FIELDS:
            setattr(issue, key, value)
    issue.updated_at = datetime.now(timezone.utc).replace(tzinfo=None)
    await db.flush()
    return issue


async def delete_issue(db: AsyncSession, issue_id: int) -> bool:
    """Delete links, tag associations and attachments, then the issue itself."""
    await db.execute(delete(IssueLink).where(IssueLink.issue_id == issue_id))
    await db.execute(delete(IssueTag).where(IssueTag.issue_id == issue_id))
    await db.execute(delete(IssueFile).where(IssueFile.issue_id == issue_id))
    result = await db.execute(delete(Issue).where(Issue.id == issue_id))
    return result.rowcount > 0
