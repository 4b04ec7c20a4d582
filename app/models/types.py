import base64
import hashlib
from functools import lru_cache
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken, MultiFernet
from sqlalchemy import LargeBinary
from sqlalchemy.types import TypeDecorator

from app.core.settings import settings


def fernet_key(secret: str) -> bytes:
    """Stretch an arbitrary secret into a urlsafe 32-byte Fernet key."""
    return base64.urlsafe_b64encode(hashlib.sha256(secret.encode("utf-8")).digest())


@lru_cache(maxsize=8)
def _cipher(secrets: tuple[str, ...]) -> MultiFernet:
    return MultiFernet([Fernet(fernet_key(secret)) for secret in secrets])


def get_cipher(secret: Optional[str] = None) -> MultiFernet:
    # New values use the first key; retired keys still decrypt old rows.
    if secret:
        return _cipher((secret,))
    return _cipher((settings.secret_key, *settings.retired_secret_keys))


class EncryptedString(TypeDecorator):
    """Text stored as Fernet ciphertext. Used for the borrower SIN."""

    impl = LargeBinary
    cache_ok = True

    def __init__(self, *, secret: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self._secret = secret

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return get_cipher(self._secret).encrypt(str(value).encode("utf-8"))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        try:
            return get_cipher(self._secret).decrypt(bytes(value)).decode("utf-8")
        except InvalidToken as exc:
            raise ValueError("Stored value could not be decrypted with any configured key") from exc


__all__ = ["EncryptedString", "fernet_key", "get_cipher"]
