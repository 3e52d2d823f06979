from datetime import datetime

from pydantic import BaseModel


class IssueFileResponse(BaseModel):
    id: int
    issue_id: int | None
    url: str
    original_name: str
    size: int
    mime_type: str
    created_at: datetime

    model_config = {"from_attributes": True}
