from collections.abc import Iterable, Mapping

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from bug_journal.models import IssueLink


async def get_links_by_issue(db: AsyncSession, issue_id: int) -> list[IssueLink]:
    result = await db.execute(
        select(IssueLink).where(IssueLink.issue_id == issue_id).order_by(IssueLink.id)
    )
    return list(result.scalars().all())


async def get_link(db: AsyncSession, link_id: int) -> IssueLink | None:
    result = await db.execute(select(IssueLink).where(IssueLink.id == link_id))
    return result.scalar_one_or_none()


async def add_link_to_issue(db: AsyncSession, issue_id: int, title: str, url: str) -> IssueLink:
    link = IssueLink(issue_id=issue_id, title=title, url=url)
    db.add(link)
    await db.flush()
    return link


async def delete_link_from_issue(db: AsyncSession, link_id: int) -> bool:
    result = await db.execute(delete(IssueLink).where(IssueLink.id == link_id))
    return result.rowcount > 0


async def replace_issue_links(
    db: AsyncSession, issue_id: int, links: Iterable[Mapping[str, str]]
) -> list[IssueLink]:
    await db.execute(delete(IssueLink).where(IssueLink.issue_id == issue_id))
    return [await add_link_to_issue(db, issue_id, link["title"], link["url"]) for link in links]
