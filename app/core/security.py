from __future__ import annotations

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.settings import settings

ACCESS_TOKEN_TYPE = "access"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class JWTKeyError(RuntimeError):
    pass


def check_password_policy(password: str) -> None:
    min_len = settings.default_password_min_length
    if len(password or "") < min_len:
        raise ValueError(f"Password too short; minimum {min_len} characters")


def get_password_hash(password: str) -> str:
    check_password_policy(password)
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def _resolve_key(inline: str | None, path: str | None, label: str) -> str:
    if inline:
        # Keys pasted into env vars often carry escaped newlines.
        return inline.replace("\\n", "\n")
    if path:
        with open(path, "r", encoding="utf-8") as key_file:
            return key_file.read()
    raise JWTKeyError(f"JWT {label} key not configured")


@lru_cache(maxsize=1)
def _load_private_key() -> str:
    return _resolve_key(settings.jwt_private_key, settings.jwt_private_key_path, "private")


@lru_cache(maxsize=1)
def _load_public_key() -> str:
    return _resolve_key(settings.jwt_public_key, settings.jwt_public_key_path, "public")


def create_access_token(
    subject: str,
    *,
    company_id: str | None = None,
    expires_delta: timedelta | None = None,
    token_version: int | None = None,
) -> str:
    """Sign an access token the way the identity provider does.

    Only used by tooling and tests; production tokens come from the provider.
    ``tv`` carries the user's ``token_version`` and ``cid`` the company the
    token was issued for.
    """
    now = datetime.now(timezone.utc)
    claims: dict[str, Any] = {
        "sub": subject,
        "type": ACCESS_TOKEN_TYPE,
        "iat": now,
        "exp": now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes)),
    }
    if company_id is not None:
        claims["cid"] = company_id
    if token_version is not None:
        claims["tv"] = token_version
    return jwt.encode(claims, _load_private_key(), algorithm=settings.jwt_algorithm)


def decode_token(token: str, expected_type: str | None = None) -> dict[str, Any]:
    try:
        payload = jwt.decode(token, _load_public_key(), algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
    if expected_type and payload.get("type") != expected_type:
        raise ValueError(f"Unexpected token type: {payload.get('type')}")
    return payload
