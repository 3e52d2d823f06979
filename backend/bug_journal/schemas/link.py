from pydantic import BaseModel, Field

URL_PATTERN = r"^https?://\S+$"


class LinkCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    url: str = Field(min_length=1, max_length=2048, pattern=URL_PATTERN)


class LinkResponse(BaseModel):
    id: int
    issue_id: int
    title: str
    url: str

    model_config = {"from_attributes": True}
