from typing import List
from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from database import get_async_db
from dependencies import ROLE_ADMIN, PaginationParams, RoleChecker, get_pagination_params
from schemas.author import AuthorRead
from services.author import author_service
from cache import Redis, get_redis

router = APIRouter(prefix="/api/authors", tags=["authors"])

require_admin_for_cache = RoleChecker(
    ROLE_ADMIN, "You do not have permission to clear the authors cache"
)


@router.get("", response_model=List[AuthorRead])
async def get_authors_router(
    pagination: PaginationParams = Depends(get_pagination_params),
    db: AsyncSession = Depends(get_async_db),
    r: Redis = Depends(get_redis),
):
    return await author_service.list_authors(db, r, pagination=pagination)


@router.post("/clear-cache", dependencies=[Depends(require_admin_for_cache)])
async def clear_authors_cache(r: Redis = Depends(get_redis)):
    await author_service.clear_cache(r)
    return {"message": "Authors cache cleared"}


@router.get("/{author_id}", response_model=AuthorRead)
async def get_author_router(
    author_id: int,
    db: AsyncSession = Depends(get_async_db),
):
    return await author_service.get_author(db, author_id=author_id)


@router.post("", response_model=AuthorRead, status_code=status.HTTP_201_CREATED)
async def create_author(
    request: Request,
    db: AsyncSession = Depends(get_async_db),
    r: Redis = Depends(get_redis),
):
    author = await author_service.create_author(db, r, body=await request.body())
    location = str(request.url_for("get_author_router", author_id=author["id"]))
    return JSONResponse(
        content=author,
        status_code=status.HTTP_201_CREATED,
        headers={"Location": location},
    )


@router.put("/{author_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_author(
    author_id: int,
    request: Request,
    db: AsyncSession = Depends(get_async_db),
    r: Redis = Depends(get_redis),
):
    await author_service.update_author(
        db, r, author_id=author_id, body=await request.body()
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{author_id}", status_code=status.HTTP_204_NO_CONTENT)
async def del_author(
    author_id: int,
    db: AsyncSession = Depends(get_async_db),
    r: Redis = Depends(get_redis),
):
    await author_service.delete_author(db, r, author_id=author_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
