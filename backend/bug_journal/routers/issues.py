import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from bug_journal.database import get_db
from bug_journal.dependencies import get_current_user, get_owned_issue
from bug_journal.models import Issue, User
from bug_journal.schemas.file import IssueFileResponse
from bug_journal.schemas.issue import IssueCreate, IssueResponse, IssueUpdate, MessageResponse, parse_issue_date
from bug_journal.schemas.link import LinkCreate, LinkResponse
from bug_journal.schemas.tag import TagCreate, TagResponse
from bug_journal.services import files as files_service
from bug_journal.services import issues as issues_service
from bug_journal.services import links as links_service
from bug_journal.services import tags as tags_service
from bug_journal.services.issues import ISSUE_FIELDS, IssueDetails

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/issues", tags=["issues"])

# Columns that cannot be cleared with an explicit null
_REQUIRED_FIELDS = ("title", "status", "date")


def _issue_response(details: IssueDetails) -> IssueResponse:
    issue = details.issue
    return IssueResponse(
        id=issue.id,
        user_id=issue.user_id,
        title=issue.title,
        description=issue.description,
        steps_to_reproduce=issue.steps_to_reproduce,
        solution=issue.solution,
        status=issue.status,
        date=issue.date,
        created_at=issue.created_at,
        updated_at=issue.updated_at,
        tags=[TagResponse.model_validate(t) for t in details.tags],
        links=[LinkResponse.model_validate(l) for l in details.links],
        files=[IssueFileResponse.model_validate(f) for f in details.files],
    )


async def _load_response(db: AsyncSession, issue_id: int) -> IssueResponse:
    details = await issues_service.get_issue(db, issue_id)
    if details is None:
        raise HTTPException(status_code=404, detail="Issue not found")
    return _issue_response(details)


@router.get("", response_model=list[IssueResponse])
async def list_issues(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> list[IssueResponse]:
    issues = await issues_service.get_issues_by_user(db, user.id)
    return [_issue_response(d) for d in issues]


@router.get("/date/{date}", response_model=list[IssueResponse])
async def list_issues_by_date(
    date: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> list[IssueResponse]:
    try:
        day = parse_issue_date(date)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format, expected YYYY-MM-DD")
    issues = await issues_service.get_issues_by_user_and_date(db, user.id, day)
    return [_issue_response(d) for d in issues]


@router.delete("/links/{link_id}", status_code=204)
async def delete_link(
    link_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> None:
    link = await links_service.get_link(db, link_id)
    if link is None:
        raise HTTPException(status_code=404, detail="Link not found")
    issue = await db.get(Issue, link.issue_id)
    if issue is None or issue.user_id != user.id:
        raise HTTPException(status_code=403, detail="Forbidden")
    await links_service.delete_link_from_issue(db, link_id)
    await db.commit()


@router.get("/{issue_id}", response_model=IssueResponse)
async def get_issue(
    issue: Issue = Depends(get_owned_issue),
    db: AsyncSession = Depends(get_db),
) -> IssueResponse:
    return await _load_response(db, issue.id)


@router.post("", response_model=IssueResponse, status_code=201)
async def create_issue(
    data: IssueCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> IssueResponse:
    issue = await issues_service.create_issue(
        db, user.id, data.model_dump(include=set(ISSUE_FIELDS)), data.file_ids
    )
    if data.tags:
        await tags_service.replace_issue_tags(db, issue.id, data.tags)
    if data.links:
        await links_service.replace_issue_links(db, issue.id, [l.model_dump() for l in data.links])
    await db.commit()
    logger.info("Issue created", extra={"user_id": user.id, "issue_id": issue.id})
    return await _load_response(db, issue.id)


@router.put("/{issue_id}", response_model=IssueResponse)
async def update_issue(
    data: IssueUpdate,
    issue: Issue = Depends(get_owned_issue),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> IssueResponse:
    changes = data.model_dump(exclude_unset=True, include=set(ISSUE_FIELDS))
    for key in _REQUIRED_FIELDS:
        if key in changes and changes[key] is None:
            del changes[key]

    updated = await issues_service.update_issue(db, issue.id, changes)
    if updated is None:
        raise HTTPException(status_code=404, detail="Issue not found")
    if data.tags is not None:
        await tags_service.replace_issue_tags(db, issue.id, data.tags)
    if data.links is not None:
        await links_service.replace_issue_links(db, issue.id, [l.model_dump() for l in data.links])
    if data.file_ids:
        await files_service.attach_files(db, user.id, issue.id, data.file_ids)
    await db.commit()
    return await _load_response(db, issue.id)


@router.delete("/{issue_id}", response_model=MessageResponse)
async def delete_issue(
    issue: Issue = Depends(get_owned_issue),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    issue_id = issue.id
    deleted = await issues_service.delete_issue(db, issue_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Issue not found")
    await db.commit()
    logger.info("Issue deleted", extra={"issue_id": issue_id})
    return MessageResponse(message="Issue deleted successfully")


@router.get("/{issue_id}/tags", response_model=list[TagResponse])
async def list_issue_tags(
    issue: Issue = Depends(get_owned_issue),
    db: AsyncSession = Depends(get_db),
) -> list[TagResponse]:
    tags = await tags_service.get_tags_by_issue(db, issue.id)
    return [TagResponse.model_validate(t) for t in tags]


@router.post("/{issue_id}/tags", response_model=list[TagResponse], status_code=201)
async def add_issue_tag(
    data: TagCreate,
    issue: Issue = Depends(get_owned_issue),
    db: AsyncSession = Depends(get_db),
) -> list[TagResponse]:
    tag = await tags_service.create_tag(db, data.name, data.color)
    await tags_service.add_tag_to_issue(db, issue.id, tag.id)
    await db.commit()
    tags = await tags_service.get_tags_by_issue(db, issue.id)
    return [TagResponse.model_validate(t) for t in tags]


@router.delete("/{issue_id}/tags/{tag_id}", status_code=204)
async def remove_issue_tag(
    tag_id: int,
    issue: Issue = Depends(get_owned_issue),
    db: AsyncSession = Depends(get_db),
) -> None:
    if await tags_service.get_tag(db, tag_id) is None:
        raise HTTPException(status_code=404, detail="Tag not found")
    await tags_service.remove_tag_from_issue(db, issue.id, tag_id)
    await db.commit()


@router.get("/{issue_id}/links", response_model=list[LinkResponse])
async def list_issue_links(
    issue: Issue = Depends(get_owned_issue),
    db: AsyncSession = Depends(get_db),
) -> list[LinkResponse]:
    links = await links_service.get_links_by_issue(db, issue.id)
    return [LinkResponse.model_validate(l) for l in links]


@router.post("/{issue_id}/links", response_model=LinkResponse, status_code=201)
async def add_issue_link(
    data: LinkCreate,
    issue: Issue = Depends(get_owned_issue),
    db: AsyncSession = Depends(get_db),
) -> LinkResponse:
    link = await links_service.add_link_to_issue(db, issue.id, data.title, data.url)
    await db.commit()
    return LinkResponse.model_validate(link)
