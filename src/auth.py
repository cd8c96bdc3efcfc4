"""Bearer-token authentication for Taleshelf — signed tokens backed by a revocation table."""
from __future__ import annotations

import hashlib
import hmac
import json
import base64
import time
import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.engine import get_session
from src.db.user_tables import UserRow, AccessTokenRow
from config.settings import settings

# ---- Password hashing (PBKDF2, stdlib only) ----

_ITERATIONS = 260_000
_SALT_LEN = 32


def hash_password(password: str) -> str:
    salt = uuid.uuid4().hex[:_SALT_LEN]
    dk = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), _ITERATIONS)
    return f"{salt}${dk.hex()}"


def verify_password(password: str, stored: str) -> bool:
    if not stored or "$" not in stored:
        return False
    salt, dk_hex = stored.split("$", 1)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), _ITERATIONS)
    return hmac.compare_digest(dk.hex(), dk_hex)


# ---- Signed tokens (JWT layout, HS256) ----

_JWT_ALGO = "HS256"


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def _b64url_decode(s: str) -> bytes:
    s += "=" * (4 - len(s) % 4)
    return base64.urlsafe_b64decode(s)


def _sign(payload: dict) -> str:
    header = _b64url(json.dumps({"alg": _JWT_ALGO, "typ": "JWT"}).encode())
    body = _b64url(json.dumps(payload).encode())
    sig_input = f"{header}.{body}".encode()
    sig = hmac.new(settings.JWT_SECRET.encode(), sig_input, hashlib.sha256).digest()
    return f"{header}.{body}.{_b64url(sig)}"


def _verify(token: str) -> Optional[dict]:
    try:
        parts = token.split(".")
        if len(parts) != 3:
            return None
        sig_input = f"{parts[0]}.{parts[1]}".encode()
        expected = hmac.new(settings.JWT_SECRET.encode(), sig_input, hashlib.sha256).digest()
        actual = _b64url_decode(parts[2])
        if not hmac.compare_digest(expected, actual):
            return None
        payload = json.loads(_b64url_decode(parts[1]))
        if not isinstance(payload, dict) or payload.get("exp", 0) < time.time():
            return None
        return payload
    except (ValueError, TypeError):
        return None


def create_token(user_id: str) -> tuple[str, str]:
    """Sign a new access token. Returns (token, jti)."""
    now = int(time.time())
    jti = uuid.uuid4().hex
    ttl = settings.ACCESS_TOKEN_TTL_HOURS * 3600
    token = _sign({"sub": user_id, "iat": now, "exp": now + ttl, "type": "access", "jti": jti})
    return token, jti


async def issue_token(session: AsyncSession, user: UserRow, name: str = "moderator-token") -> str:
    """Sign a token and record it so it can be revoked later."""
    token, jti = create_token(user.id)
    session.add(AccessTokenRow(id=jti, user_id=user.id, name=name))
    await session.commit()
    return token


async def revoke_token(session: AsyncSession, token_row: AccessTokenRow) -> None:
    await session.delete(token_row)
    await session.commit()


# ---- FastAPI dependencies ----

_bearer = HTTPBearer(auto_error=False)


async def get_current_token(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    session: AsyncSession = Depends(get_session),
) -> Optional[AccessTokenRow]:
    """Resolve the presented bearer token against the token table."""
    if not creds:
        return None
    payload = _verify(creds.credentials)
    if not payload or payload.get("type") != "access":
        return None
    result = await session.execute(
        select(AccessTokenRow, UserRow)
        .join(UserRow, AccessTokenRow.user_id == UserRow.id)
        .where(AccessTokenRow.id == payload.get("jti"), UserRow.id == payload.get("sub"))
    )
    row = result.first()
    if row is None:
        return None
    token_row, _user = row
    await session.execute(
        update(AccessTokenRow)
        .where(AccessTokenRow.id == token_row.id)
        .values(last_used_at=datetime.now(timezone.utc))
    )
    await session.commit()
    return token_row


async def get_current_user(
    token: Optional[AccessTokenRow] = Depends(get_current_token),
    session: AsyncSession = Depends(get_session),
) -> Optional[UserRow]:
    if token is None:
        return None
    return await session.get(UserRow, token.user_id)


async def require_token(token: Optional[AccessTokenRow] = Depends(get_current_token)) -> AccessTokenRow:
    if token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthenticated")
    return token


async def require_user(user: Optional[UserRow] = Depends(get_current_user)) -> UserRow:
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthenticated")
    return user


async def require_moderator(user: UserRow = Depends(require_user)) -> UserRow:
    """Role gate for /moderator routes: moderator or admin."""
    if not user.is_staff:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User does not have the right roles")
    return user


# ---- Request models ----

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
