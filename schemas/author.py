from typing import List
from pydantic import ConfigDict, Field
from .shared import BookSummary, CamelModel


class AuthorPayload(CamelModel):
    """Author fields accepted from a request body; unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore")

    first_name: str | None = None
    last_name: str | None = None


class AuthorRead(CamelModel):
    id: int
    first_name: str
    last_name: str
    books: List[BookSummary] = Field(default_factory=list)
