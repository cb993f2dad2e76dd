import logging
from typing import Any

from pydantic import TypeAdapter
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cache import (
    AUTHORS_CACHE_TAG,
    BOOKS_CACHE_TAG,
    Redis,
    get_or_compute,
    invalidate_tags,
    make_list_key,
)
from dependencies import PaginationParams
from errors import NotFoundError, PayloadError, ValidationFailed
from models import Author, Book
from schemas.book import AuthorId, AuthorReference, BookPayload, BookRead
from serialization import apply_payload, dump, parse_json_object
from services.author import CLIENT_FAILURES
from validation import validate_book

# sentinel looked up when an update carries no idAuthor; never matches a row
MISSING_AUTHOR_ID = -1

_author_id_adapter = TypeAdapter(AuthorId)

# author payloads embed their books, book payloads embed their author
BOOK_WRITE_TAGS = [BOOKS_CACHE_TAG, AUTHORS_CACHE_TAG]


class BookService:
    """
    Book operations, including linking a book to its author.

    On create the ``author`` field is either the id of an existing author or
    an inline author object that is created together with the book. On
    update the author is reassigned from the raw ``idAuthor`` field.
    """

    def __init__(self):
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def _load(self, db: AsyncSession, book_id: int) -> Book:
        stmt = (
            select(Book)
            .options(selectinload(Book.author))
            .where(Book.id == book_id)
            .execution_options(populate_existing=True)
        )
        book = (await db.execute(stmt)).scalar_one_or_none()
        if book is None:
            raise NotFoundError(f"Book with id {book_id} not found")
        return book

    async def list_books(
        self, db: AsyncSession, r: Redis, *, pagination: PaginationParams
    ) -> list[dict[str, Any]]:
        async def fetch_page():
            stmt = (
                select(Book)
                .options(selectinload(Book.author))
                .order_by(Book.id.asc())
                .offset(pagination.offset)
                .limit(pagination.limit)
            )
            books = (await db.execute(stmt)).scalars().all()
            return [dump(BookRead, b) for b in books]

        key = make_list_key("getBookList", pagination.page, pagination.limit)
        return await get_or_compute(key, [BOOKS_CACHE_TAG], fetch_page, r)

    async def get_book(self, db: AsyncSession, *, book_id: int) -> dict[str, Any]:
        return dump(BookRead, await self._load(db, book_id))

    async def create_book(
        self, db: AsyncSession, r: Redis, *, body: bytes
    ) -> dict[str, Any]:
        try:
            data = parse_json_object(body)
            raw_author = data.pop("author", None)

            book = apply_payload(Book(), BookPayload.model_validate(data))
            # an absent author is allowed: the book is stored without one
            if raw_author is not None:
                reference = AuthorReference.validate_python(raw_author)
                book.author = await reference.resolve(db)

            errors = validate_book(book)
            if errors:
                raise ValidationFailed(errors)

            db.add(book)
            await db.commit()
        except CLIENT_FAILURES as exc:
            await db.rollback()
            raise PayloadError(f"Error while creating the book: {exc}") from exc

        book = await self._load(db, book.id)
        await invalidate_tags(BOOK_WRITE_TAGS, r)
        self._logger.info(
            f"Book created: {book.id}", extra={"author_id": book.author_id}
        )
        return dump(BookRead, book)

    async def update_book(
        self, db: AsyncSession, r: Redis, *, book_id: int, body: bytes
    ) -> None:
        book = await self._load(db, book_id)
        try:
            data = parse_json_object(body)
            apply_payload(book, BookPayload.model_validate(data))

            raw_author_id = data.get("idAuthor")
            author_id = _author_id_adapter.validate_python(
                MISSING_AUTHOR_ID if raw_author_id is None else raw_author_id
            )
            # an unknown or missing idAuthor detaches the current author
            book.author = await db.get(Author, author_id)
            if book.author is None:
                self._logger.info(f"Book {book_id} has no author after update")

            errors = validate_book(book)
            if errors:
                raise ValidationFailed(errors)

            await db.commit()
        except CLIENT_FAILURES as exc:
            await db.rollback()
            raise PayloadError(f"Error while updating the book: {exc}") from exc
        except ValidationFailed:
            await db.rollback()
            raise

        await invalidate_tags(BOOK_WRITE_TAGS, r)
        self._logger.info(f"Book {book_id} updated")

    async def delete_book(self, db: AsyncSession, r: Redis, *, book_id: int) -> None:
        book = await self._load(db, book_id)
        await invalidate_tags(BOOK_WRITE_TAGS, r)
        await db.delete(book)
        await db.commit()
        self._logger.warning(f"Book {book_id} deleted")

    async def clear_cache(self, r: Redis) -> None:
        await invalidate_tags([BOOKS_CACHE_TAG], r)


book_service = BookService()
