import hashlib
import hmac
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from errors import Forbidden, Unauthorized

JWT_SECRET = os.getenv("JWT_SECRET", "devsecret")
JWT_ALGO = "HS256"
JWT_EXPIRES_DAYS = int(os.getenv("JWT_EXPIRES_DAYS", "30"))

# auto_error is off so a missing header is a 401 with our own message
security = HTTPBearer(auto_error=False)


class Identity(BaseModel):
    id: str
    isAdmin: bool = False


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode()).hexdigest()


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    return hmac.compare_digest(hash_password(password), password_hash)


def issue_credential(user_id: str, is_admin: bool = False, expires_in: Optional[timedelta] = None) -> str:
    exp = datetime.now(timezone.utc) + (expires_in if expires_in is not None else timedelta(days=JWT_EXPIRES_DAYS))
    to_encode = {"id": user_id, "isAdmin": bool(is_admin), "exp": exp}
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGO)


def verify_credential(token: str) -> Identity:
    """Validate signature and expiry of a bearer token and return the identity it asserts."""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGO])
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token expired")
    except jwt.InvalidTokenError:
        raise Unauthorized("Not authorized, token failed")
    user_id = payload.get("id")
    if not user_id:
        raise Unauthorized("Invalid token payload")
    return Identity(id=str(user_id), isAdmin=bool(payload.get("isAdmin", False)))


async def get_current_identity(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> Identity:
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Not authorized, no token")
    return verify_credential(credentials.credentials)


async def require_admin(identity: Identity = Depends(get_current_identity)) -> Identity:
    if not identity.isAdmin:
        raise Forbidden("Not authorized as an admin")
    return identity
