from typing import Annotated, Any, Union

from pydantic import BeforeValidator, ConfigDict, Field, RootModel, TypeAdapter
from pydantic_core import PydanticCustomError
from sqlalchemy.ext.asyncio import AsyncSession

from database import SQL_BIGINT_MAX
from errors import NotFoundError
from models import Author
from .author import AuthorPayload
from .shared import AuthorSummary, CamelModel


class BookPayload(CamelModel):
    """Book fields accepted from a request body; ``author`` is handled apart."""

    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    cover_text: str | None = None


class BookRead(CamelModel):
    id: int
    title: str
    cover_text: str | None = None
    author: AuthorSummary | None = None


def _reject_bool(value: Any) -> Any:
    # lax int mode would read true as 1
    if isinstance(value, bool):
        raise PydanticCustomError("int_type", "Input should be a valid integer")
    return value


# an integer or a numeric string, never a JSON boolean
AuthorId = Annotated[
    int, BeforeValidator(_reject_bool), Field(ge=-SQL_BIGINT_MAX, le=SQL_BIGINT_MAX)
]


class AuthorIdReference(RootModel[AuthorId]):
    """``"author": 12`` links the book to an existing author."""

    async def resolve(self, db: AsyncSession) -> Author:
        author = await db.get(Author, self.root)
        if author is None:
            raise NotFoundError(f"Author not found with id: {self.root}")
        return author


class InlineAuthor(AuthorPayload):
    """``"author": {"firstName": ...}`` creates a new author with the book."""

    async def resolve(self, db: AsyncSession) -> Author:
        return Author(first_name=self.first_name, last_name=self.last_name)


# Numeric ids are tried first; anything else must decode as an inline author.
AuthorReference = TypeAdapter(
    Annotated[
        Union[AuthorIdReference, InlineAuthor],
        Field(union_mode="left_to_right"),
    ]
)
