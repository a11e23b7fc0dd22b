"""Request dependencies: repository access, caller identity, cron secret."""
import hmac
from functools import lru_cache

from fastapi import Header, HTTPException

from ..config import settings
from ..repository import WorkflowRepository, create_db_engine


@lru_cache
def get_repository() -> WorkflowRepository:
    repo = WorkflowRepository(create_db_engine(settings.database_url))
    repo.create_schema()
    return repo


async def current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    # Authentication happens upstream; the gateway forwards the user id.
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing user")
    return x_user_id


async def require_api_secret(authorization: str | None = Header(default=None)) -> None:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Unauthorized")
    secret = authorization.removeprefix("Bearer ")
    if not settings.api_secret or not hmac.compare_digest(secret, settings.api_secret):
        raise HTTPException(status_code=401, detail="Unauthorized")
