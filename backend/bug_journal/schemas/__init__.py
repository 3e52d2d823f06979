from bug_journal.schemas.ai import SuggestionRequest, SuggestionResponse, SummaryRequest, SummaryResponse
from bug_journal.schemas.auth import AuthConfig, Token, TokenData, UserCreate, UserLogin, UserResponse
from bug_journal.schemas.file import IssueFileResponse
from bug_journal.schemas.issue import IssueCreate, IssueResponse, IssueUpdate, MessageResponse
from bug_journal.schemas.link import LinkCreate, LinkResponse
from bug_journal.schemas.tag import TagCreate, TagResponse

__all__ = [
    "AuthConfig",
    "Token",
    "TokenData",
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "IssueCreate",
    "IssueUpdate",
    "IssueResponse",
    "MessageResponse",
    "TagCreate",
    "TagResponse",
    "LinkCreate",
    "LinkResponse",
    "IssueFileResponse",
    "SuggestionRequest",
    "SuggestionResponse",
    "SummaryRequest",
    "SummaryResponse",
]
