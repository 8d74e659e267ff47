# filehub/core/security.py
from __future__ import annotations
from enum import Enum
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt  # PyJWT
from passlib.context import CryptContext

from .config import get_settings

# ---- Password hashing (PBKDF2; no 72-byte limit like bcrypt) ----
_pwd = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

def hash_password(pw: str) -> str:
    return _pwd.hash(pw)

def verify_password(pw: str, hashed: str) -> bool:
    return _pwd.verify(pw, hashed)

# ---- Roles ----
class Role(str, Enum):
    viewer = "viewer"
    contributor = "contributor"
    admin = "admin"


ROLE_RANK = {Role.viewer: 0, Role.contributor: 1, Role.admin: 2}


def role_at_least(actual: str, required: Role) -> bool:
    try:
        return ROLE_RANK[Role(actual)] >= ROLE_RANK[required]
    except ValueError:
        return False

# ---- JWT helpers ----
def create_jwt(sub: str, role: Role | str) -> str:
    s = get_settings()
    now = datetime.now(timezone.utc)
    exp = now + timedelta(hours=int(s.JWT_EXPIRE_HOURS))
    claims: Dict[str, Any] = {
        "sub": sub,
        "role": Role(role).value,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
        "iss": s.JWT_ISSUER,
        "aud": s.JWT_AUDIENCE,
    }
    return jwt.encode(claims, s.JWT_SECRET, algorithm="HS256")


def decode_jwt(token: str) -> Dict[str, Any]:
    s = get_settings()
    return jwt.decode(
        token,
        s.JWT_SECRET,
        algorithms=["HS256"],
        audience=s.JWT_AUDIENCE,
        issuer=s.JWT_ISSUER,
    )
