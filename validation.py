"""
Entity constraints.

Each constraints model mirrors the columns of an ORM entity. Validating an
entity means reading its attributes into the model and collecting every
violation as a human-readable message keyed by the JSON field name.
"""

from typing import Any

from pydantic import ValidationError, field_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from schemas.shared import CamelModel

MAX_NAME_LENGTH = 255


def _not_blank(value: Any, max_length: int = MAX_NAME_LENGTH) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise PydanticCustomError("blank", "This value should not be blank.")
    if not isinstance(value, str):
        # left to the field type to reject
        return value
    if len(value) > max_length:
        raise PydanticCustomError(
            "too_long",
            "This value is too long. It should have {max_length} characters or less.",
            {"max_length": max_length},
        )
    return value


class AuthorConstraints(CamelModel):
    first_name: str
    last_name: str

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def check_name(cls, value: Any) -> Any:
        return _not_blank(value)


class BookConstraints(CamelModel):
    title: str
    cover_text: str | None = None

    @field_validator("title", mode="before")
    @classmethod
    def check_title(cls, value: Any) -> Any:
        return _not_blank(value)


def _json_field(constraints: type[CamelModel], loc: tuple) -> str:
    parts = [str(part) for part in loc]
    field = constraints.model_fields.get(parts[0]) if parts else None
    if field is not None:
        # errors are located by attribute name when reading from attributes
        parts[0] = field.alias or to_camel(parts[0])
    return ".".join(parts)


def validate_entity(constraints: type[CamelModel], entity: Any, prefix: str = "") -> list[str]:
    """Return the violation messages of ``entity``; empty when it is valid."""
    try:
        constraints.model_validate(entity, from_attributes=True)
    except ValidationError as exc:
        return [
            f"{prefix}{_json_field(constraints, error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
    return []


def validate_author(author: Any, prefix: str = "") -> list[str]:
    return validate_entity(AuthorConstraints, author, prefix)


def validate_book(book: Any) -> list[str]:
    messages = validate_entity(BookConstraints, book)
    # a freshly inlined author has no id yet and is validated with the book
    if book.author is not None and book.author.id is None:
        messages.extend(validate_author(book.author, prefix="author."))
    return messages
