from loguru import logger

from movieflix.core.config import settings
from movieflix.core.constants import AUTH_TOKEN_KEY
from movieflix.core.security import TokenCipher, redact_token
from movieflix.services.storage.store import CacheStore


class AuthTokenStore:
    """Bearer token kept in the cache store, encrypted at rest when a cipher is configured."""

    def __init__(self, store: CacheStore, cipher: TokenCipher | None = None):
        self.store = store
        self.cipher = cipher

    @classmethod
    def from_settings(cls, store: CacheStore) -> "AuthTokenStore":
        cipher = TokenCipher(settings.TOKEN_SECRET) if settings.TOKEN_SECRET else None
        if cipher is None:
            logger.warning("TOKEN_SECRET is not set. Auth tokens are stored unencrypted.")
        elif settings.TOKEN_SALT == "change-me":
            logger.warning("TOKEN_SALT is using the default placeholder. Set a strong value to secure tokens.")
        return cls(store, cipher)

    async def get(self) -> str | None:
        stored = await self.store.get(AUTH_TOKEN_KEY)
        if not stored or not isinstance(stored, str):
            return None
        if self.cipher is None:
            return stored
        token = self.cipher.decrypt(stored)
        if token is None:
            logger.warning("Stored auth token could not be decrypted; ignoring it")
        return token

    async def set(self, token: str) -> bool:
        value = self.cipher.encrypt(token) if self.cipher else token
        stored = await self.store.set(AUTH_TOKEN_KEY, value)
        if stored:
            logger.info(f"Stored auth token {redact_token(token)}")
        return stored

    async def clear(self) -> bool:
        logger.info("Clearing stored auth token")
        return await self.store.remove(AUTH_TOKEN_KEY)
