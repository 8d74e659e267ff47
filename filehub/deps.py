# filehub/deps.py
from __future__ import annotations
from typing import Iterator

import jwt
from fastapi import Depends, Header, Query
from loguru import logger
from sqlalchemy.orm import Session

from .core.config import Settings, get_settings
from .core.database import get_session_local
from .core.errors import AuthenticationError, AuthorizationError
from .core.security import Role, decode_jwt, role_at_least
from .domain import repos, storage
from .domain.db_models import UserModel


def get_config() -> Settings:
    return get_settings()

def get_session() -> Iterator[Session]:
    session = get_session_local()()
    try:
        yield session
    finally:
        session.close()

def get_repo(session: Session = Depends(get_session)) -> repos.ModelRepo:
    return repos.ModelRepo(session)

def get_user_repo(session: Session = Depends(get_session)) -> repos.UserRepo:
    return repos.UserRepo(session)

def get_blob_store() -> storage.BlobStore:
    return storage.get_blob_store()

def _bearer(authorization: str | None) -> str | None:
    if not authorization:
        return None
    if not authorization.lower().startswith("bearer "):
        raise AuthenticationError("Missing bearer token")
    return authorization.split(" ", 1)[1].strip()

def optional_user(
    authorization: str | None = Header(default=None),
    users: repos.UserRepo = Depends(get_user_repo),
) -> UserModel | None:
    """The signed-in user, or None for anonymous callers. A bad token is still an error."""
    token = _bearer(authorization)
    if token is None:
        return None
    try:
        payload = decode_jwt(token)
    except jwt.PyJWTError as e:
        logger.info("Rejected token: {}", e)
        raise AuthenticationError("Invalid token")
    user = users.get_by_username(payload.get("sub", ""))
    if user is None:
        raise AuthenticationError("Unknown user")
    return user

def require_user(user: UserModel | None = Depends(optional_user)) -> UserModel:
    if user is None:
        raise AuthenticationError("Missing bearer token")
    return user

def require_role(role: Role):
    def dep(user: UserModel = Depends(require_user)) -> UserModel:
        if not role_at_least(user.role, role):
            raise AuthorizationError(f"{role.value.capitalize()} required")
        return user
    return dep

require_viewer = require_role(Role.viewer)
require_contributor = require_role(Role.contributor)
require_admin = require_role(Role.admin)

def require_webhook_token(
    token: str | None = Query(default=None),
    settings: Settings = Depends(get_config),
) -> None:
    if settings.WEBHOOK_TOKEN and token != settings.WEBHOOK_TOKEN:
        logger.warning("Webhook call with a bad token")
        raise AuthenticationError("Unauthorized")
