import logging
from typing import Any

from pydantic import ValidationError as PayloadValidationError
from sqlalchemy import select
from sqlalchemy.exc import DataError, IntegrityError
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
from models import Author
from schemas.author import AuthorPayload, AuthorRead
from serialization import apply_payload, dump, parse_json_object
from validation import validate_author

# failures that mean "the client sent something unusable", not a server fault
CLIENT_FAILURES = (PayloadError, PayloadValidationError, IntegrityError, DataError)


class AuthorService:
    """
    Author operations.

    Reads of the list go through the ``authorsCache`` tag; every write
    commits first and then invalidates the tags whose payloads it changed.
    """

    def __init__(self):
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def _load(self, db: AsyncSession, author_id: int) -> Author:
        stmt = (
            select(Author)
            .options(selectinload(Author.books))
            .where(Author.id == author_id)
            .execution_options(populate_existing=True)
        )
        author = (await db.execute(stmt)).scalar_one_or_none()
        if author is None:
            raise NotFoundError(f"Author with id {author_id} not found")
        return author

    async def list_authors(
        self, db: AsyncSession, r: Redis, *, pagination: PaginationParams
    ) -> list[dict[str, Any]]:
        async def fetch_page():
            stmt = (
                select(Author)
                .options(selectinload(Author.books))
                .order_by(Author.id.asc())
                .offset(pagination.offset)
                .limit(pagination.limit)
            )
            authors = (await db.execute(stmt)).scalars().all()
            return [dump(AuthorRead, a) for a in authors]

        key = make_list_key("getAuthorList", pagination.page, pagination.limit)
        return await get_or_compute(key, [AUTHORS_CACHE_TAG], fetch_page, r)

    async def get_author(self, db: AsyncSession, *, author_id: int) -> dict[str, Any]:
        return dump(AuthorRead, await self._load(db, author_id))

    async def create_author(
        self, db: AsyncSession, r: Redis, *, body: bytes
    ) -> dict[str, Any]:
        try:
            payload = AuthorPayload.model_validate(parse_json_object(body))
            author = apply_payload(Author(), payload)

            errors = validate_author(author)
            if errors:
                raise ValidationFailed(errors)

            db.add(author)
            await db.commit()
        except CLIENT_FAILURES as exc:
            await db.rollback()
            raise PayloadError(f"Error while creating the author: {exc}") from exc

        author = await self._load(db, author.id)
        await invalidate_tags([AUTHORS_CACHE_TAG], r)
        self._logger.info(f"Author created: {author.id}")
        return dump(AuthorRead, author)

    async def update_author(
        self, db: AsyncSession, r: Redis, *, author_id: int, body: bytes
    ) -> None:
        author = await self._load(db, author_id)
        try:
            payload = AuthorPayload.model_validate(parse_json_object(body))
            apply_payload(author, payload)

            errors = validate_author(author)
            if errors:
                raise ValidationFailed(errors)

            await db.commit()
        except CLIENT_FAILURES as exc:
            await db.rollback()
            raise PayloadError(f"Error while updating the author: {exc}") from exc
        except ValidationFailed:
            await db.rollback()
            raise

        # book payloads embed the author's names
        await invalidate_tags([AUTHORS_CACHE_TAG, BOOKS_CACHE_TAG], r)
        self._logger.info(
            f"Author {author_id} updated",
            extra={"updated_fields": sorted(payload.model_fields_set)},
        )

    async def delete_author(self, db: AsyncSession, r: Redis, *, author_id: int) -> None:
        author = await self._load(db, author_id)
        book_ids = [b.id for b in author.books]
        await db.delete(author)
        await db.commit()
        await invalidate_tags([AUTHORS_CACHE_TAG, BOOKS_CACHE_TAG], r)
        self._logger.warning(
            f"Author {author_id} deleted with {len(book_ids)} book(s)",
            extra={"deleted_book_ids": book_ids},
        )

    async def clear_cache(self, r: Redis) -> None:
        await invalidate_tags([AUTHORS_CACHE_TAG], r)


author_service = AuthorService()
