# filehub/api/v1/admin.py
from fastapi import APIRouter, Depends
from loguru import logger

from ...core.config import get_settings
from ...core.database import transaction
from ...core.errors import ConflictError, ValidationError
from ...core.security import Role, hash_password
from ...domain import repos, schemas
from ... import deps
from .users import to_profile

router = APIRouter()


def ensure_admin(users: repos.UserRepo) -> bool:
    """Create the configured admin account if it does not exist yet."""
    s = get_settings()
    if users.get_by_username(s.ADMIN_USERNAME):
        return False
    with transaction(users.session):
        users.create(s.ADMIN_USERNAME, hash_password(s.ADMIN_PASSWORD), Role.admin.value)
    logger.info("Created admin user {}", s.ADMIN_USERNAME)
    return True

@router.post("/bootstrap")
def bootstrap(users: repos.UserRepo = Depends(deps.get_user_repo)):
    if not ensure_admin(users):
        return {"detail": "already-initialized"}
    return {"detail": "initialized"}

@router.post("/users", response_model=schemas.UserProfile, status_code=201)
def create_user(body: schemas.UserCreate,
                users: repos.UserRepo = Depends(deps.get_user_repo),
                admin=Depends(deps.require_admin)):
    try:
        role = Role(body.role)
    except ValueError:
        raise ValidationError(f"Unknown role: {body.role}")
    if users.get_by_username(body.username):
        raise ConflictError(f"User {body.username} already exists")
    with transaction(users.session):
        user = users.create(body.username, hash_password(body.password), role.value, email=body.email)
    logger.info("Admin {} created user {} ({})", admin.username, user.username, role.value)
    return to_profile(user)

@router.get("/ip-blacklist", response_model=schemas.IpBlacklist)
def get_ip_blacklist(session=Depends(deps.get_session), admin=Depends(deps.require_admin)):
    return schemas.IpBlacklist(ips=repos.KeyValueRepo(session).ip_blacklist())

@router.put("/ip-blacklist", response_model=schemas.IpBlacklist)
def set_ip_blacklist(body: schemas.IpBlacklist,
                     session=Depends(deps.get_session),
                     admin=Depends(deps.require_admin)):
    kv = repos.KeyValueRepo(session)
    with transaction(session):
        kv.set_ip_blacklist(body.ips)
    logger.info("Admin {} set ip blacklist ({} entries)", admin.username, len(body.ips))
    return schemas.IpBlacklist(ips=kv.ip_blacklist())
