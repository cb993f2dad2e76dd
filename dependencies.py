import logging
import os
import secrets

from dotenv import load_dotenv
from fastapi import Depends, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from database import SQL_BIGINT_MAX

load_dotenv()

logger = logging.getLogger(__name__)

ROLE_USER = "ROLE_USER"
ROLE_ADMIN = "ROLE_ADMIN"

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 3
MAX_LIMIT = 50
# keeps the offset of the last page within a bound SQL integer
MAX_PAGE = SQL_BIGINT_MAX // MAX_LIMIT

ADMIN_API_KEY = os.getenv("ADMIN_API_KEY")
USER_API_KEY = os.getenv("USER_API_KEY")

bearer_scheme = HTTPBearer(auto_error=False)


def _to_int(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        # non-numeric input reads as 0 and is clamped below
        return 0


class PaginationParams:
    """Clamped page/limit pair shared by the list endpoints."""

    def __init__(self, page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT):
        self.page = max(1, min(MAX_PAGE, page))
        self.limit = max(1, min(MAX_LIMIT, limit))
        self.offset = (self.page - 1) * self.limit


async def get_pagination_params(
    page: str | None = Query(None, description="Page number, starts at 1"),
    limit: str | None = Query(None, description="Page size, 1 to 50"),
) -> PaginationParams:
    return PaginationParams(
        page=_to_int(page, DEFAULT_PAGE), limit=_to_int(limit, DEFAULT_LIMIT)
    )


async def get_current_roles(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> set[str]:
    """Roles held by the caller, derived from the bearer API key."""
    if credentials is None:
        return set()
    token = credentials.credentials
    if ADMIN_API_KEY and secrets.compare_digest(token, ADMIN_API_KEY):
        return {ROLE_USER, ROLE_ADMIN}
    if USER_API_KEY and secrets.compare_digest(token, USER_API_KEY):
        return {ROLE_USER}
    return set()


class RoleChecker:
    """Dependency that lets the request through only if the caller holds ``role``."""

    def __init__(self, role: str, message: str):
        self.role = role
        self.message = message

    def __call__(self, roles: set[str] = Depends(get_current_roles)) -> set[str]:
        if not roles:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication required",
                headers={"WWW-Authenticate": "Bearer"},
            )
        if self.role not in roles:
            logger.warning(f"Access denied, {self.role} required: {self.message}")
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=self.message)
        return roles
