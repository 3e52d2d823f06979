from pydantic import BaseModel, Field


class SuggestionRequest(BaseModel):
    title: str | None = Field(None, max_length=255)
    description: str = Field("", max_length=10000)
    steps_to_reproduce: str | None = Field(None, max_length=10000)


class SuggestionResponse(BaseModel):
    suggestion: str
    explanation: str | None = None
    resources: list[str] = []


class SummaryRequest(BaseModel):
    description: str = Field("", max_length=10000)


class SummaryResponse(BaseModel):
    summary: str
