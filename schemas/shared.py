from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class AuthorSummary(CamelModel):
    id: int
    first_name: str
    last_name: str


class BookSummary(CamelModel):
    id: int
    title: str
    cover_text: str | None = None
