# filehub/api/v1/auth.py
from fastapi import APIRouter, Depends
from loguru import logger

from ... import deps
from ...core.errors import AuthenticationError
from ...core.security import verify_password, create_jwt
from ...domain import repos
from ...domain.db_models import UserModel
from ...domain.schemas import LoginRequest, LoginResult

router = APIRouter()

@router.post("/login", response_model=LoginResult)
def login(req: LoginRequest, users: repos.UserRepo = Depends(deps.get_user_repo)):
    user = users.get_by_username(req.username)
    if not user or not verify_password(req.password, user.hashed):
        logger.info("Failed login for {}", req.username)
        raise AuthenticationError("Invalid credentials")

    token = create_jwt(sub=user.username, role=user.role)
    return LoginResult(token=token)

@router.get("/whoami")
def whoami(user: UserModel = Depends(deps.require_user)):
    return {"sub": user.username, "role": user.role}
