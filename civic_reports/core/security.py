# civic_reports/core/security.py
import time
from typing import Optional

import jwt
from bson import ObjectId
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext

from civic_reports.core.config import Settings
from civic_reports.core.errors import AuthenticationError, AuthorizationError
from civic_reports.db.mongo import Mongo
from civic_reports.db.session import get_db, get_app_settings

ALGO = "HS256"

pwd = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
)

bearer = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    # bcrypt hard limit: 72 BYTES
    if isinstance(password, str):
        password = password.encode("utf-8")
    password = password[:72]
    return pwd.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    if isinstance(password, str):
        password = password.encode("utf-8")
    password = password[:72]
    return pwd.verify(password, hashed)


def create_access_token(settings: Settings, user_id: str, role: str) -> str:
    now = int(time.time())
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + settings.jwt_expires_minutes * 60,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGO)


def decode_access_token(settings: Settings, token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[ALGO])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token")


async def _load_user(mongo: Mongo, settings: Settings, token: str) -> dict:
    payload = decode_access_token(settings, token)
    sub = payload.get("sub")
    if not sub or not ObjectId.is_valid(sub):
        raise AuthenticationError("Invalid token payload")

    user = await mongo.users.find_one({"_id": ObjectId(sub)})
    if not user:
        raise AuthenticationError("User not found")
    if not user.get("is_active", True):
        raise AuthorizationError("Account disabled")
    return user


async def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    mongo: Mongo = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> dict:
    if not creds:
        raise AuthenticationError("Not authenticated")
    return await _load_user(mongo, settings, creds.credentials)


async def get_optional_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    mongo: Mongo = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> Optional[dict]:
    """
    Anonymous callers get None. A token that is present but broken is still
    rejected, so a client never silently falls back to the public view.
    """
    if not creds:
        return None
    return await _load_user(mongo, settings, creds.credentials)


def require_role(*roles):
    role_values = {r.value if hasattr(r, "value") else r for r in roles}

    async def _dep(user: dict = Depends(get_current_user)) -> dict:
        if user.get("role") not in role_values:
            raise AuthorizationError(f"Role '{user.get('role')}' is not allowed to access this route")
        return user

    return _dep


