import datetime as dt
import re
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from bug_journal.schemas.file import IssueFileResponse
from bug_journal.schemas.link import LinkCreate, LinkResponse
from bug_journal.schemas.tag import TagResponse, normalize_tag_name

IssueStatus = Literal["unresolved", "in_progress", "resolved"]

DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


def parse_issue_date(value: str) -> dt.date:
    """Parse a ``YYYY-MM-DD`` calendar day, rejecting any other shape."""
    if not DATE_PATTERN.fullmatch(value):
        raise ValueError("Date must use the YYYY-MM-DD format")
    return dt.date.fromisoformat(value)


def _parse_date(value: object) -> object:
    if isinstance(value, str):
        return parse_issue_date(value)
    return value


def _normalize_tags(value: list[str] | None) -> list[str] | None:
    if value is None:
        return None
    names = [normalize_tag_name(v) for v in value]
    for name in names:
        if len(name) > 50:
            raise ValueError("Tag names are limited to 50 characters")
    return list(dict.fromkeys(names))


def _strip_title(value: str | None) -> str | None:
    if value is None:
        return None
    title = value.strip()
    if not title:
        raise ValueError("Title must not be blank")
    return title


class IssueCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    steps_to_reproduce: str | None = None
    solution: str | None = None
    status: IssueStatus = "unresolved"
    date: dt.date | None = None
    tags: list[str] = []
    links: list[LinkCreate] = []
    file_ids: list[int] = []

    @field_validator("title")
    @classmethod
    def check_title(cls, value: str) -> str:
        return _strip_title(value)

    @field_validator("date", mode="before")
    @classmethod
    def check_date(cls, value: object) -> object:
        return _parse_date(value)

    @field_validator("tags")
    @classmethod
    def check_tags(cls, value: list[str]) -> list[str]:
        return _normalize_tags(value)


class IssueUpdate(BaseModel):
    """Partial update.

    ``tags`` and ``links`` left out keep the current set, an empty list clears
    it and a non-empty list replaces it. ``file_ids`` attaches more uploads.
    """

    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    steps_to_reproduce: str | None = None
    solution: str | None = None
    status: IssueStatus | None = None
    date: dt.date | None = None
    tags: list[str] | None = None
    links: list[LinkCreate] | None = None
    file_ids: list[int] | None = None

    @field_validator("title")
    @classmethod
    def check_title(cls, value: str | None) -> str | None:
        return _strip_title(value)

    @field_validator("date", mode="before")
    @classmethod
    def check_date(cls, value: object) -> object:
        return _parse_date(value)

    @field_validator("tags")
    @classmethod
    def check_tags(cls, value: list[str] | None) -> list[str] | None:
        return _normalize_tags(value)


class IssueResponse(BaseModel):
    id: int
    user_id: int
    title: str
    description: str | None
    steps_to_reproduce: str | None
    solution: str | None
    status: str
    date: dt.date
    created_at: dt.datetime
    updated_at: dt.datetime
    tags: list[TagResponse] = []
    links: list[LinkResponse] = []
    files: list[IssueFileResponse] = []


class MessageResponse(BaseModel):
    message: str
