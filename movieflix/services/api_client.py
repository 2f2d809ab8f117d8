import time
from collections import deque
from collections.abc import Callable
from typing import Any

import httpx
from loguru import logger

from movieflix.core.config import settings
from movieflix.core.constants import OFFLINE_QUEUED_MESSAGE
from movieflix.core.exceptions import ApiError
from movieflix.models.api import ApiResponse, QueuedRequest, RequestOptions
from movieflix.services.auth import AuthTokenStore
from movieflix.services.error_reporter import ErrorReporter
from movieflix.services.retry import retry_operation
from movieflix.services.storage.store import CacheStore


class ApiClient:
    """
    The one way to reach the recommendation API.

    Adds the bearer token, normalizes every outcome into an ApiResponse and,
    while the host reports being offline, defers requests that could not be
    sent into a FIFO queue that is replayed on reconnect.

    The queue lives in memory only: requests still queued when the process
    exits are lost.
    """

    def __init__(
        self,
        store: CacheStore,
        auth: AuthTokenStore,
        base_url: str = settings.API_BASE_URL,
        timeout: float = settings.API_TIMEOUT_SECONDS,
        retry_attempts: int = settings.API_RETRY_ATTEMPTS,
        retry_base_delay: float = settings.API_RETRY_BASE_DELAY_SECONDS,
        error_reporter: ErrorReporter | None = None,
        online: bool = True,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.auth = auth
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_attempts = max(1, retry_attempts)
        self.retry_base_delay = retry_base_delay
        self.error_reporter = error_reporter
        self.online = online
        self.clock = clock
        self._client = client
        self._owns_client = client is None
        self._queue: deque[QueuedRequest] = deque()
        self._draining = False

    async def get_client(self) -> httpx.AsyncClient:
        """Get or create the httpx.AsyncClient instance."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
            self._owns_client = True
        return self._client

    async def close(self):
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    # Request path

    def resolve_url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def build_headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        token = await self.auth.get()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if extra:
            headers.update(extra)
        return headers

    async def request(
        self,
        path: str,
        method: str = "GET",
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> ApiResponse:
        """Call the API and return the normalized envelope. Never raises for HTTP or transport failures."""
        target = self.resolve_url(path)
        options = RequestOptions(method=method.upper(), params=params, json_body=json, headers=headers or {})
        try:
            return await self._perform(target, options, endpoint=path)
        except httpx.RequestError as e:
            if not self.online:
                self._enqueue(target, options)
                return ApiResponse(success=False, error=OFFLINE_QUEUED_MESSAGE, queued=True)
            return await self._transport_failure(e, path)

    async def _send(self, target: str, options: RequestOptions) -> httpx.Response:
        client = await self.get_client()
        return await client.request(
            options.method,
            target,
            params=options.params,
            json=options.json_body,
            headers=await self.build_headers(options.headers),
        )

    async def _perform(self, target: str, options: RequestOptions, endpoint: str) -> ApiResponse:
        """Issue one call and convert the HTTP response. Request errors propagate."""
        if self.retry_attempts > 1 and self.online:
            response = await retry_operation(
                lambda: self._send(target, options),
                max_retries=self.retry_attempts,
                base_delay=self.retry_base_delay,
                retry_on=(httpx.RequestError,),
            )
        else:
            response = await self._send(target, options)
        return await self._to_api_response(response, endpoint)

    async def _to_api_response(self, response: httpx.Response, endpoint: str) -> ApiResponse:
        try:
            data = response.json()
        except ValueError:
            data = response.text or None

        if response.is_success:
            return ApiResponse(success=True, data=data, status=response.status_code)

        error = None
        if isinstance(data, dict):
            error = data.get("error") or data.get("message")
        error = str(error) if error else f"HTTP {response.status_code}: {response.reason_phrase}"
        logger.warning(f"API error ({response.request.method} {endpoint}): {error}")

        if self.error_reporter:
            await self.error_reporter.handle_api_error(
                ApiError(error, status=response.status_code, endpoint=endpoint), endpoint
            )
        return ApiResponse(success=False, error=error, status=response.status_code)

    async def _transport_failure(self, error: httpx.RequestError, endpoint: str) -> ApiResponse:
        message = str(error) or type(error).__name__
        logger.warning(f"API transport error ({endpoint}): {message}")
        if self.error_reporter:
            await self.error_reporter.handle_api_error(error, endpoint)
        return ApiResponse(success=False, error=message)

    # Offline queue

    def _enqueue(self, target: str, options: RequestOptions) -> None:
        self._queue.append(QueuedRequest(target=target, options=options, enqueued_at=self.clock()))
        logger.info(f"Offline: queued {options.method} {target} ({len(self._queue)} pending)")

    @property
    def queue_size(self) -> int:
        return len(self._queue)

    def pending_requests(self) -> list[QueuedRequest]:
        return list(self._queue)

    async def set_online(self, online: bool) -> int:
        """Record the host's connectivity signal. Going back online drains the queue.

        Returns:
            Number of queued requests replayed
        """
        was_online = self.online
        self.online = online
        if online and not was_online:
            logger.info("Connectivity restored")
            return await self.process_queue()
        if not online and was_online:
            logger.info("Connectivity lost; failed requests will be queued")
        return 0

    async def process_queue(self) -> int:
        """Replay queued requests one at a time, oldest first.

        Only one drain runs at a time. A replay that fails while online is
        reported and dropped; if connectivity is lost mid-drain the request
        goes back to the head of the queue and the drain stops.
        """
        if self._draining:
            logger.debug("Queue drain already in progress")
            return 0

        self._draining = True
        replayed = 0
        try:
            while self._queue and self.online:
                item = self._queue.popleft()
                try:
                    await self._perform(item.target, item.options, endpoint=item.target)
                except httpx.RequestError as e:
                    if not self.online:
                        self._queue.appendleft(item)
                        logger.info(f"Connectivity lost while draining; {len(self._queue)} request(s) still queued")
                        break
                    await self._transport_failure(e, item.target)
                replayed += 1
        finally:
            self._draining = False

        if replayed:
            logger.info(f"Replayed {replayed} queued request(s)")
        return replayed

    # Cached reads

    async def cached_get(
        self,
        path: str,
        cache_key: str,
        ttl: float = settings.CACHE_DEFAULT_TTL_SECONDS,
        params: dict[str, Any] | None = None,
    ) -> ApiResponse:
        cached = await self.store.get_cache(cache_key)
        if cached is not None:
            logger.debug(f"Cache hit for {cache_key}")
            return ApiResponse(success=True, data=cached)

        response = await self.request(path, params=params)
        if response.success and response.data is not None:
            await self.store.set_cache(cache_key, response.data, ttl)
        return response

    # Auth

    async def _store_token(self, response: ApiResponse) -> None:
        if response.success and isinstance(response.data, dict) and response.data.get("token"):
            await self.auth.set(response.data["token"])

    async def register(self, user_data: dict[str, Any]) -> ApiResponse:
        response = await self.request("/register", "POST", json=user_data)
        await self._store_token(response)
        return response

    async def login(self, username: str, password: str) -> ApiResponse:
        response = await self.request("/login", "POST", json={"username": username, "password": password})
        await self._store_token(response)
        return response

    async def logout(self) -> None:
        await self.auth.clear()
        await self.store.clear_cache()

    # Content and recommendations

    async def get_homepage_content(self) -> ApiResponse:
        return await self.cached_get("/homepage", "homepage", settings.CACHE_CONTENT_TTL_SECONDS)

    async def get_personalized_recommendations(self, limit: int = 20) -> ApiResponse:
        return await self.request("/recommendations/personalized", params={"limit": limit})

    async def get_content_details(self, content_id: int | str) -> ApiResponse:
        return await self.cached_get(
            f"/content/{content_id}", f"content_{content_id}", settings.CACHE_CONTENT_TTL_SECONDS
        )

    async def search_content(self, query: str, content_type: str = "multi", page: int = 1) -> ApiResponse:
        return await self.cached_get(
            "/search",
            f"search_{content_type}_{page}_{query.strip().lower()}",
            settings.CACHE_SEARCH_TTL_SECONDS,
            params={"query": query, "type": content_type, "page": page},
        )

    # User data

    async def record_interaction(
        self, content_id: int | str, interaction_type: str, rating: float | None = None
    ) -> ApiResponse:
        return await self.request(
            "/interactions",
            "POST",
            json={"content_id": content_id, "interaction_type": interaction_type, "rating": rating},
        )

    async def get_user_favorites(self) -> ApiResponse:
        return await self.request("/user/favorites")

    async def get_user_watchlist(self) -> ApiResponse:
        return await self.request("/user/watchlist")
