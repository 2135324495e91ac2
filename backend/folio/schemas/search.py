from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SearchResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    name: str
    username: Optional[str] = None
    image: Optional[str] = None
    custom_status: Optional[str] = Field(default=None, alias="customStatus")
    score: float


class SearchResponse(BaseModel):
    users: list[SearchResultResponse]
