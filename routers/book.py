from typing import List
from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from database import get_async_db
from dependencies import ROLE_ADMIN, PaginationParams, RoleChecker, get_pagination_params
from schemas.book import BookRead
from services.book import book_service
from cache import Redis, get_redis

router = APIRouter(prefix="/api/books", tags=["books"])

require_admin_to_create = RoleChecker(
    ROLE_ADMIN, "You do not have permission to create a book"
)
require_admin_to_update = RoleChecker(
    ROLE_ADMIN, "You do not have permission to update a book"
)
require_admin_to_delete = RoleChecker(
    ROLE_ADMIN, "You do not have permission to delete a book"
)
require_admin_for_cache = RoleChecker(
    ROLE_ADMIN, "You do not have permission to clear the books cache"
)


@router.get("", response_model=List[BookRead])
async def get_books_router(
    pagination: PaginationParams = Depends(get_pagination_params),
    db: AsyncSession = Depends(get_async_db),
    r: Redis = Depends(get_redis),
):
    return await book_service.list_books(db, r, pagination=pagination)


@router.post("/clear-cache", dependencies=[Depends(require_admin_for_cache)])
async def clear_books_cache(r: Redis = Depends(get_redis)):
    await book_service.clear_cache(r)
    return {"message": "Books cache cleared"}


@router.get("/{book_id}", response_model=BookRead)
async def get_book_router(
    book_id: int,
    db: AsyncSession = Depends(get_async_db),
):
    return await book_service.get_book(db, book_id=book_id)


@router.post(
    "",
    response_model=BookRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin_to_create)],
)
async def create_book(
    request: Request,
    db: AsyncSession = Depends(get_async_db),
    r: Redis = Depends(get_redis),
):
    book = await book_service.create_book(db, r, body=await request.body())
    location = str(request.url_for("get_book_router", book_id=book["id"]))
    return JSONResponse(
        content=book,
        status_code=status.HTTP_201_CREATED,
        headers={"Location": location},
    )


@router.put(
    "/{book_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin_to_update)],
)
async def update_book(
    book_id: int,
    request: Request,
    db: AsyncSession = Depends(get_async_db),
    r: Redis = Depends(get_redis),
):
    await book_service.update_book(db, r, book_id=book_id, body=await request.body())
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/{book_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin_to_delete)],
)
async def delete_book(
    book_id: int,
    db: AsyncSession = Depends(get_async_db),
    r: Redis = Depends(get_redis),
):
    await book_service.delete_book(db, r, book_id=book_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
