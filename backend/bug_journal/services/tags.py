import logging
import zlib
from collections.abc import Iterable

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bug_journal.models import IssueTag, Tag

logger = logging.getLogger(__name__)

TAG_PALETTE = (
    "#EF4444",
    "#F97316",
    "#EAB308",
    "#22C55E",
    "#14B8A6",
    "#3B82F6",
    "#6366F1",
    "#A855F7",
    "#EC4899",
    "#64748B",
)


def color_for_name(name: str) -> str:
    """Stable palette color for a tag name."""
    return TAG_PALETTE[zlib.crc32(name.lower().encode()) % len(TAG_PALETTE)]


async def get_all_tags(db: AsyncSession) -> list[Tag]:
    result = await db.execute(select(Tag).order_by(Tag.name))
    return list(result.scalars().all())


async def get_tag(db: AsyncSession, tag_id: int) -> Tag | None:
    result = await db.execute(select(Tag).where(Tag.id == tag_id))
    return result.scalar_one_or_none()


async def get_tag_by_name(db: AsyncSession, name: str) -> Tag | None:
    result = await db.execute(select(Tag).where(Tag.name == name))
    return result.scalar_one_or_none()


async def get_tags_by_issue(db: AsyncSession, issue_id: int) -> list[Tag]:
    result = await db.execute(
        select(Tag)
        .join(IssueTag, IssueTag.tag_id == Tag.id)
        .where(IssueTag.issue_id == issue_id)
        .order_by(Tag.name)
    )
    return list(result.scalars().all())


async def create_tag(db: AsyncSession, name: str, color: str | None = None) -> Tag:
    """Find-or-create a tag by its unique name.

    An existing tag is returned untouched, including its color. When another
    request inserts the same name between our lookup and our insert, the
    unique constraint rejects ours and the other row is returned instead.
    """
    name = name.strip()
    existing = await get_tag_by_name(db, name)
    if existing is not None:
        return existing

    tag = Tag(name=name, color=color or color_for_name(name))
    try:
        async with db.begin_nested():
            db.add(tag)
    except IntegrityError:
        logger.info("Tag inserted concurrently, using existing row", extra={"tag": name})
        existing = await get_tag_by_name(db, name)
        if existing is None:
            raise
        return existing
    return tag


async def get_issue_tag(db: AsyncSession, issue_id: int, tag_id: int) -> IssueTag | None:
    result = await db.execute(
        select(IssueTag).where(IssueTag.issue_id == issue_id, IssueTag.tag_id == tag_id)
    )
    return result.scalar_one_or_none()


async def add_tag_to_issue(db: AsyncSession, issue_id: int, tag_id: int) -> None:
    if await get_issue_tag(db, issue_id, tag_id) is not None:
        return
    try:
        async with db.begin_nested():
            db.add(IssueTag(issue_id=issue_id, tag_id=tag_id))
    except IntegrityError:
        # a concurrent request linked the same pair first
        logger.info("Tag already linked", extra={"issue_id": issue_id, "tag_id": tag_id})


async def remove_tag_from_issue(db: AsyncSession, issue_id: int, tag_id: int) -> None:
    await db.execute(
        delete(IssueTag).where(IssueTag.issue_id == issue_id, IssueTag.tag_id == tag_id)
    )


def unique_tag_names(names: Iterable[str]) -> list[str]:
    """Strip names and drop blanks and repeats, keeping first-seen order."""
    return list(dict.fromkeys(n.strip() for n in names if n and n.strip()))


async def replace_issue_tags(db: AsyncSession, issue_id: int, names: Iterable[str]) -> list[Tag]:
    """Replace the tag set of an issue: drop every association, then rebuild.

    Tags themselves are never deleted, only their links to this issue.
    """
    await db.execute(delete(IssueTag).where(IssueTag.issue_id == issue_id))
    await db.flush()

    tags: list[Tag] = []
    for name in unique_tag_names(names):
        tag = await create_tag(db, name)
        await add_tag_to_issue(db, issue_id, tag.id)
        tags.append(tag)
    return tags
