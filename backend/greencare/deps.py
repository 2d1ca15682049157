"""Tokens: bearer JWTs for the admin API and signed, expiring links for public downloads."""
import time
from typing import Any, Dict

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from greencare.config import SECRET_KEY

ALGO = "HS256"
_bearer = HTTPBearer()


def _encode(payload: Dict[str, Any], ttl_seconds: int) -> str:
    return jwt.encode(dict(payload, exp=int(time.time()) + int(ttl_seconds)), SECRET_KEY, algorithm=ALGO)


def decode_token(token: str) -> Dict[str, Any]:
    """Signature and expiry check; raises ``ValueError`` on any failure."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGO])
    except JWTError as e:
        raise ValueError(str(e))


def create_access_token(sub: str, ttl_seconds: int = 60 * 60 * 24) -> str:
    return _encode({"sub": sub}, ttl_seconds)


def subject_of(token: str) -> str:
    sub = decode_token(token).get("sub")
    if not sub:
        raise ValueError("token has no subject")
    return sub


def create_signed_token(kind: str, data: Dict[str, Any], ttl_seconds: int = 300) -> str:
    return _encode(dict(data, k=kind), ttl_seconds)


def verify_signed_token(token: str, expected_kind: str) -> Dict[str, Any]:
    data = decode_token(token)
    if data.get("k") != expected_kind:
        raise ValueError("wrong kind")
    return data


async def get_current_user(creds: HTTPAuthorizationCredentials = Depends(_bearer)):
    try:
        sub = subject_of(creds.credentials)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token")
    return {"sub": sub}
