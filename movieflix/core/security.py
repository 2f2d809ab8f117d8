import base64

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from movieflix.core.config import settings


def redact_token(token: str | None) -> str:
    """
    Redact a token for logging purposes.
    Shows the first 6 characters followed by ***.
    """
    if not token:
        return "None"
    if len(token) <= 6:
        return token
    return f"{token[:6]}***"


class TokenCipher:
    """Symmetric encryption for credentials kept in client storage."""

    def __init__(self, secret: str, salt: str = settings.TOKEN_SALT):
        if not secret:
            raise ValueError("TokenCipher requires a non-empty secret")
        if not salt:
            raise ValueError("TokenCipher requires a non-empty salt")
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt.encode("utf-8"),
            iterations=200_000,
        )
        key = base64.urlsafe_b64encode(kdf.derive(secret.encode("utf-8")))
        self._fernet = Fernet(key)

    def encrypt(self, token: str) -> str:
        return self._fernet.encrypt(token.encode("utf-8")).decode("utf-8")

    def decrypt(self, enc: str) -> str | None:
        """Return the plain token, or None if `enc` was not produced by this cipher."""
        try:
            return self._fernet.decrypt(enc.encode("utf-8")).decode("utf-8")
        except (InvalidToken, ValueError):
            return None
