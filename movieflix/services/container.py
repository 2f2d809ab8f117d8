from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger

from movieflix.core.config import settings
from movieflix.models.errors import UserNotice
from movieflix.services.api_client import ApiClient
from movieflix.services.auth import AuthTokenStore
from movieflix.services.error_reporter import ErrorReporter
from movieflix.services.storage.backends import MemoryBackend, RedisBackend, StorageBackend
from movieflix.services.storage.store import CacheStore
from movieflix.services.user_library import UserLibrary


@dataclass
class ClientServices:
    """The service objects of one client process, built once and passed to consumers."""

    store: CacheStore
    session: CacheStore
    auth: AuthTokenStore
    errors: ErrorReporter
    api: ApiClient
    library: UserLibrary

    async def startup(self) -> None:
        """Drop data left by another storage version. Entries without a TTL are never aged out here."""
        await self.store.ensure_version(settings.STORAGE_VERSION)

    async def close(self) -> None:
        await self.api.close()
        await self.errors.close()
        await self.store.backend.close()
        await self.session.backend.close()


def create_services(
    backend: StorageBackend | None = None,
    session_backend: StorageBackend | None = None,
    http_client: httpx.AsyncClient | None = None,
    on_notice: Callable[[UserNotice], Any] | None = None,
) -> ClientServices:
    """Wire the client services together. Defaults come from settings."""
    store = CacheStore(backend or RedisBackend(), prefix=settings.STORAGE_PREFIX)
    session = CacheStore(
        session_backend or MemoryBackend(max_entries=settings.SESSION_MAX_ENTRIES),
        prefix=settings.STORAGE_PREFIX,
    )
    auth = AuthTokenStore.from_settings(store)
    errors = ErrorReporter(store, auth, client=http_client, on_notice=on_notice)
    api = ApiClient(store, auth, error_reporter=errors, client=http_client)
    logger.debug(f"Client services created for {settings.API_BASE_URL}")
    return ClientServices(
        store=store,
        session=session,
        auth=auth,
        errors=errors,
        api=api,
        library=UserLibrary(store),
    )
