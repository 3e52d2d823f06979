"""Storage-layer tests: aggregation, find-or-create and cascade semantics."""

from datetime import date, datetime

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bug_journal.models import Issue, IssueFile, IssueLink, IssueTag, Tag, User
from bug_journal.schemas.issue import parse_issue_date
from bug_journal.services import files as files_service
from bug_journal.services import issues as issues_service
from bug_journal.services import links as links_service
from bug_journal.services import tags as tags_service


async def _count(db: AsyncSession, model, *where) -> int:
    result = await db.execute(select(func.count()).select_from(model).where(*where))
    return result.scalar_one()


async def _make_issue(db: AsyncSession, user: User, title: str = "Bug", day: str = "2025-04-08", **extra) -> Issue:
    issue = await issues_service.create_issue(
        db, user.id, {"title": title, "date": date.fromisoformat(day), **extra}
    )
    await db.commit()
    return issue


class TestTags:
    async def test_create_tag_returns_existing_row(self, db: AsyncSession) -> None:
        first = await tags_service.create_tag(db, "react")
        await db.commit()
        second = await tags_service.create_tag(db, "react", "#000000")
        await db.commit()
        assert second.id == first.id
        assert second.color == first.color
        assert await _count(db, Tag, Tag.name == "react") == 1

    async def test_create_tag_strips_name_and_assigns_palette_color(self, db: AsyncSession) -> None:
        tag = await tags_service.create_tag(db, "  python  ")
        await db.commit()
        assert tag.name == "python"
        assert tag.color in tags_service.TAG_PALETTE
        assert tags_service.color_for_name("python") == tag.color

    async def test_create_tag_keeps_explicit_color(self, db: AsyncSession) -> None:
        tag = await tags_service.create_tag(db, "css", "#123ABC")
        await db.commit()
        assert tag.color == "#123ABC"

    async def test_add_same_pair_twice_creates_one_row(self, db: AsyncSession, user: User) -> None:
        issue = await _make_issue(db, user)
        tag = await tags_service.create_tag(db, "react")
        await tags_service.add_tag_to_issue(db, issue.id, tag.id)
        await tags_service.add_tag_to_issue(db, issue.id, tag.id)
        await db.commit()
        assert await _count(db, IssueTag, IssueTag.issue_id == issue.id) == 1

    async def test_create_tag_uses_row_inserted_concurrently(
        self, db: AsyncSession, session_maker: async_sessionmaker[AsyncSession], monkeypatch
    ) -> None:
        async with session_maker() as other:
            other.add(Tag(name="race", color="#000000"))
            await other.commit()

        real_lookup = tags_service.get_tag_by_name
        misses: list[str] = []

        async def stale_lookup(session: AsyncSession, name: str) -> Tag | None:
            # first lookup runs before the other writer committed
            if not misses:
                misses.append(name)
                return None
            return await real_lookup(session, name)

        monkeypatch.setattr(tags_service, "get_tag_by_name", stale_lookup)
        tag = await tags_service.create_tag(db, "race")
        await db.commit()

        assert misses == ["race"]
        assert tag.color == "#000000"
        assert await _count(db, Tag, Tag.name == "race") == 1

    async def test_add_tag_to_issue_tolerates_concurrent_link(
        self, db: AsyncSession, user: User, monkeypatch
    ) -> None:
        issue = await _make_issue(db, user)
        tag = await tags_service.create_tag(db, "race")
        await tags_service.add_tag_to_issue(db, issue.id, tag.id)
        await db.commit()

        async def stale_pair_lookup(session: AsyncSession, issue_id: int, tag_id: int) -> None:
            return None

        monkeypatch.setattr(tags_service, "get_issue_tag", stale_pair_lookup)
        await tags_service.add_tag_to_issue(db, issue.id, tag.id)
        await db.commit()

        assert await _count(db, IssueTag, IssueTag.issue_id == issue.id, IssueTag.tag_id == tag.id) == 1

    async def test_remove_missing_pair_is_noop(self, db: AsyncSession, user: User) -> None:
        issue = await _make_issue(db, user)
        await tags_service.remove_tag_from_issue(db, issue.id, 999)
        await db.commit()
        assert await tags_service.get_tags_by_issue(db, issue.id) == []

    async def test_get_tags_by_issue_joins_through_associations(self, db: AsyncSession, user: User) -> None:
        issue = await _make_issue(db, user)
        other = await _make_issue(db, user, title="Other")
        for name in ("zeta", "alpha"):
            tag = await tags_service.create_tag(db, name)
            await tags_service.add_tag_to_issue(db, issue.id, tag.id)
        await tags_service.create_tag(db, "unused")
        await db.commit()

        assert [t.name for t in await tags_service.get_tags_by_issue(db, issue.id)] == ["alpha", "zeta"]
        assert await tags_service.get_tags_by_issue(db, other.id) == []
        assert [t.name for t in await tags_service.get_all_tags(db)] == ["alpha", "unused", "zeta"]

    async def test_replace_tags_rebuilds_set_and_keeps_tag_rows(self, db: AsyncSession, user: User) -> None:
        issue = await _make_issue(db, user)
        await tags_service.replace_issue_tags(db, issue.id, ["a", "b"])
        await db.commit()

        await tags_service.replace_issue_tags(db, issue.id, ["b", "c"])
        await db.commit()

        assert {t.name for t in await tags_service.get_tags_by_issue(db, issue.id)} == {"b", "c"}
        assert await tags_service.get_tag_by_name(db, "a") is not None
        assert await _count(db, IssueTag, IssueTag.issue_id == issue.id) == 2

    async def test_replace_tags_collapses_duplicates(self, db: AsyncSession, user: User) -> None:
        issue = await _make_issue(db, user)
        tags = await tags_service.replace_issue_tags(db, issue.id, ["x", " x ", "", "y"])
        await db.commit()
        assert [t.name for t in tags] == ["x", "y"]
        assert await _count(db, IssueTag, IssueTag.issue_id == issue.id) == 2

    async def test_unique_tag_names(self) -> None:
        assert tags_service.unique_tag_names([" a", "b", "a ", "  "]) == ["a", "b"]


class TestIssueAggregation:
    async def test_get_missing_issue_returns_none(self, db: AsyncSession) -> None:
        assert await issues_service.get_issue(db, 12345) is None

    async def test_get_issue_attaches_tags_links_and_files(self, db: AsyncSession, user: User) -> None:
        issue = await _make_issue(db, user, description="boom")
        await tags_service.replace_issue_tags(db, issue.id, ["react"])
        await links_service.add_link_to_issue(db, issue.id, "Docs", "https://react.dev")
        upload = await files_service.store_upload(db, user.id, "trace.txt", "text/plain", b"stack")
        await files_service.attach_files(db, user.id, issue.id, [upload.id])
        await db.commit()

        details = await issues_service.get_issue(db, issue.id)
        assert details is not None
        assert details.issue.description == "boom"
        assert details.issue.status == "unresolved"
        assert [t.name for t in details.tags] == ["react"]
        assert [(l.title, l.url) for l in details.links] == [("Docs", "https://react.dev")]
        assert [f.original_name for f in details.files] == ["trace.txt"]
        assert details.files[0].url == f"/api/files/{upload.id}"

    async def test_issues_by_user_ordered_by_date_then_creation(
        self, db: AsyncSession, user: User, other_user: User
    ) -> None:
        old = await _make_issue(db, user, title="old", day="2025-04-01")
        first = await _make_issue(db, user, title="first", day="2025-04-08")
        second = await _make_issue(db, user, title="second", day="2025-04-08")
        first.created_at = datetime(2025, 4, 8, 9, 0)
        second.created_at = datetime(2025, 4, 8, 10, 0)
        await _make_issue(db, other_user, title="not mine", day="2025-04-09")
        await db.commit()

        titles = [d.issue.title for d in await issues_service.get_issues_by_user(db, user.id)]
        assert titles == ["second", "first", "old"]

    async def test_date_filter_uses_calendar_date_not_created_at(self, db: AsyncSession, user: User) -> None:
        target = await _make_issue(db, user, title="target", day="2025-04-08")
        previous = await _make_issue(db, user, title="previous day", day="2025-04-07")
        following = await _make_issue(db, user, title="next day", day="2025-04-09")
        # Logged within minutes of midnight on the target day, but filed on neighbouring days.
        previous.created_at = datetime(2025, 4, 8, 0, 5)
        following.created_at = datetime(2025, 4, 8, 23, 55)
        target.created_at = datetime(2025, 4, 7, 23, 59)
        await db.commit()

        found = await issues_service.get_issues_by_user_and_date(db, user.id, "2025-04-08")
        assert [d.issue.title for d in found] == ["target"]

    async def test_date_filter_is_scoped_to_user(self, db: AsyncSession, user: User, other_user: User) -> None:
        await _make_issue(db, other_user, day="2025-04-08")
        assert await issues_service.get_issues_by_user_and_date(db, user.id, date(2025, 4, 8)) == []

    @pytest.mark.parametrize("value", ["2025-4-8", "20250408", "2025-04-08T00:00", "2025-02-30", "2025-13-01", ""])
    async def test_parse_issue_date_rejects_malformed(self, value: str) -> None:
        with pytest.raises(ValueError):
            parse_issue_date(value)

    async def test_create_issue_defaults(self, db: AsyncSession, user: User) -> None:
        issue = await issues_service.create_issue(db, user.id, {"title": "No date", "date": None})
        await db.commit()
        assert issue.status == "unresolved"
        assert issue.date == date.today()
        assert issue.created_at is not None

    async def test_update_issue_is_partial_and_refreshes_updated_at(self, db: AsyncSession, user: User) -> None:
        issue = await _make_issue(db, user, description="keep me")
        issue.updated_at = datetime(2000, 1, 1)
        await db.commit()

        updated = await issues_service.update_issue(db, issue.id, {"status": "resolved", "solution": "fixed"})
        await db.commit()
        assert updated is not None
        assert updated.status == "resolved"
        assert updated.solution == "fixed"
        assert updated.description == "keep me"
        assert updated.updated_at > datetime(2000, 1, 1)

    async def test_update_missing_issue_returns_none(self, db: AsyncSession) -> None:
        assert await issues_service.update_issue(db, 999, {"title": "x"}) is None

    async def test_delete_issue_removes_links_tags_and_files(self, db: AsyncSession, user: User) -> None:
        issue = await _make_issue(db, user)
        keep = await _make_issue(db, user, title="keep")
        await tags_service.replace_issue_tags(db, issue.id, ["react", "hooks"])
        await tags_service.replace_issue_tags(db, keep.id, ["react"])
        await links_service.add_link_to_issue(db, issue.id, "Docs", "https://example.com")
        upload = await files_service.store_upload(db, user.id, "log.txt", None, b"x")
        await files_service.attach_files(db, user.id, issue.id, [upload.id])
        await db.commit()
        issue_id = issue.id

        assert await issues_service.delete_issue(db, issue_id) is True
        await db.commit()

        assert await issues_service.get_issue(db, issue_id) is None
        assert await links_service.get_links_by_issue(db, issue_id) == []
        assert await tags_service.get_tags_by_issue(db, issue_id) == []
        assert await files_service.get_files_by_issue(db, issue_id) == []
        assert await _count(db, IssueTag, IssueTag.issue_id == issue_id) == 0
        assert await _count(db, IssueLink, IssueLink.issue_id == issue_id) == 0
        # shared tag rows and other issues survive
        assert await tags_service.get_tag_by_name(db, "hooks") is not None
        assert [t.name for t in await tags_service.get_tags_by_issue(db, keep.id)] == ["react"]

    async def test_delete_missing_issue_returns_false(self, db: AsyncSession) -> None:
        assert await issues_service.delete_issue(db, 4242) is False


class TestLinks:
    async def test_add_list_delete(self, db: AsyncSession, user: User) -> None:
        issue = await _make_issue(db, user)
        link = await links_service.add_link_to_issue(db, issue.id, "SO", "https://stackoverflow.com/q/1")
        await db.commit()
        assert [l.id for l in await links_service.get_links_by_issue(db, issue.id)] == [link.id]

        assert await links_service.delete_link_from_issue(db, link.id) is True
        await db.commit()
        assert await links_service.delete_link_from_issue(db, link.id) is False
        assert await links_service.get_links_by_issue(db, issue.id) == []

    async def test_replace_links(self, db: AsyncSession, user: User) -> None:
        issue = await _make_issue(db, user)
        await links_service.add_link_to_issue(db, issue.id, "old", "https://old.example")
        await links_service.replace_issue_links(db, issue.id, [{"title": "new", "url": "https://new.example"}])
        await db.commit()
        assert [l.title for l in await links_service.get_links_by_issue(db, issue.id)] == ["new"]


class TestFiles:
    async def test_create_issue_reassociates_uploaded_files(self, db: AsyncSession, user: User) -> None:
        upload = await files_service.store_upload(db, user.id, "shot.png", "image/png", b"\x89PNG")
        await db.commit()
        assert upload.issue_id is None

        issue = await issues_service.create_issue(
            db, user.id, {"title": "With file", "date": date(2025, 4, 8)}, file_ids=[upload.id]
        )
        await db.commit()

        files = await files_service.get_files_by_issue(db, issue.id)
        assert [f.id for f in files] == [upload.id]
        assert await _count(db, IssueFile) == 1

    async def test_attach_skips_foreign_and_already_attached_files(
        self, db: AsyncSession, user: User, other_user: User
    ) -> None:
        first = await _make_issue(db, user, title="first")
        second = await _make_issue(db, user, title="second")
        theirs = await files_service.store_upload(db, other_user.id, "theirs.txt", None, b"t")
        taken = await files_service.store_upload(db, user.id, "taken.txt", None, b"t")
        await files_service.attach_files(db, user.id, first.id, [taken.id])
        await db.commit()

        moved = await files_service.attach_files(db, user.id, second.id, [theirs.id, taken.id, 777])
        await db.commit()
        assert moved == []
        assert (await files_service.get_file(db, taken.id)).issue_id == first.id
        assert (await files_service.get_file(db, theirs.id)).issue_id is None

    async def test_get_file_with_content(self, db: AsyncSession, user: User) -> None:
        upload = await files_service.store_upload(db, user.id, "a.bin", None, b"\x00\x01")
        await db.commit()
        db.expunge_all()
        stored = await files_service.get_file(db, upload.id, with_content=True)
        assert stored.content == b"\x00\x01"
        assert stored.mime_type == files_service.DEFAULT_MIME_TYPE
        assert stored.size == 2
