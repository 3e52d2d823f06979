from bug_journal.models.issue import ISSUE_STATUSES, Issue
from bug_journal.models.issue_file import IssueFile
from bug_journal.models.issue_link import IssueLink
from bug_journal.models.tag import IssueTag, Tag
from bug_journal.models.user import User

__all__ = ["User", "Issue", "ISSUE_STATUSES", "Tag", "IssueTag", "IssueLink", "IssueFile"]
