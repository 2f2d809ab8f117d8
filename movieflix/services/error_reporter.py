import asyncio
import platform
import sys
import threading
import traceback
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from movieflix.core.config import settings
from movieflix.core.constants import ERROR_LOGS_KEY
from movieflix.core.errors import FRIENDLY_MESSAGES, classify_error, get_status, kind_for_status, status_message
from movieflix.core.exceptions import ApiError
from movieflix.core.version import __version__
from movieflix.models.errors import ErrorRecord, UserNotice
from movieflix.services.auth import AuthTokenStore
from movieflix.services.storage.store import CacheStore

USER_AGENT = f"movieflix-client/{__version__} python/{platform.python_version()}"


class ErrorReporter:
    """
    Single sink for captured failures.

    Every error becomes an ErrorRecord in a bounded log persisted through the
    cache store, is posted once to the remote collector, and is reduced to a
    short UserNotice handed to `on_notice` (the host's toast hook).
    """

    def __init__(
        self,
        store: CacheStore,
        auth: AuthTokenStore,
        client: httpx.AsyncClient | None = None,
        collector_url: str = f"{settings.API_BASE_URL.rstrip('/')}{settings.ERROR_COLLECTOR_PATH}",
        enabled: bool = settings.ERROR_REPORTING_ENABLED,
        max_logs: int = settings.ERROR_LOG_MAX_ENTRIES,
        trim_to: int = settings.ERROR_LOG_TRIM_TO,
        on_notice: Callable[[UserNotice], Any] | None = None,
        page_url: str = settings.APP_URL,
    ):
        self.store = store
        self.auth = auth
        self.collector_url = collector_url
        self.enabled = enabled
        self.max_logs = max_logs
        self.trim_to = trim_to
        self.on_notice = on_notice
        self.page_url = page_url
        self._client = client
        self._owns_client = client is None
        self._errors: list[ErrorRecord] | None = None
        self._lock = asyncio.Lock()
        self._pending: set[asyncio.Task] = set()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._previous_hooks: tuple | None = None

    async def get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=settings.API_TIMEOUT_SECONDS)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    # Capture

    def build_record(self, error: BaseException | str, context: str = "Unknown", url: str | None = None) -> ErrorRecord:
        if isinstance(error, BaseException):
            message = str(error) or type(error).__name__
            stack = (
                "".join(traceback.format_exception(type(error), error, error.__traceback__))
                if error.__traceback__
                else ""
            )
        else:
            message = error or "Unknown error"
            stack = ""
        return ErrorRecord(
            message=message,
            stack=stack,
            context=context,
            timestamp=datetime.now(timezone.utc).isoformat(),
            user_agent=USER_AGENT,
            url=url or self.page_url,
        )

    async def handle_error(
        self,
        error: BaseException | str,
        context: str = "Unknown",
        url: str | None = None,
        notify: bool = True,
    ) -> UserNotice:
        """Record, report and translate one failure. Never raises."""
        record = self.build_record(error, context, url)
        logger.error(f"[{context}] {record.message}")

        await self.log_errors([record])
        await self.send_to_collector(record)

        kind = classify_error(error)
        notice = UserNotice(message=FRIENDLY_MESSAGES[kind], type="error", kind=kind)
        if notify:
            self._notify(notice)
        return notice

    async def log_errors(self, records: Iterable[ErrorRecord]) -> None:
        """Append records to the log, trimming once if it grew past max_logs, and persist it."""
        async with self._lock:
            errors = await self._load()
            errors.extend(records)
            if len(errors) > self.max_logs:
                del errors[: len(errors) - self.trim_to]
            stored = await self.store.set(ERROR_LOGS_KEY, [r.model_dump(by_alias=True) for r in errors])
            if not stored:
                logger.warning(f"Could not persist error log ({len(errors)} entries)")

    async def send_to_collector(self, record: ErrorRecord) -> bool:
        """Single best-effort POST of `record`. Failures are logged at debug level only."""
        if not self.enabled or not self.collector_url:
            return False
        try:
            client = await self.get_client()
            await client.post(
                self.collector_url,
                json=record.model_dump(by_alias=True),
                headers={"Content-Type": "application/json"},
            )
            return True
        except Exception as e:
            logger.debug(f"Error collector unreachable: {e}")
            return False

    async def handle_api_error(self, error: BaseException, endpoint: str) -> UserNotice:
        """Translate a failed API call by HTTP status. A 401 also drops the stored auth token."""
        status = get_status(error)
        message = status_message(status)

        if status == 401:
            await self.auth.clear()

        await self.handle_error(ApiError(f"{endpoint}: {message}", status=status, endpoint=endpoint), "API", notify=False)

        kind = kind_for_status(status) if status is not None else classify_error(error)
        notice = UserNotice(message=message, type="error", kind=kind)
        self._notify(notice)
        return notice

    def _notify(self, notice: UserNotice) -> None:
        if self.on_notice is None:
            return
        try:
            self.on_notice(notice)
        except Exception as e:
            logger.warning(f"Notice handler failed: {e}")

    # Diagnostics

    async def _load(self) -> list[ErrorRecord]:
        if self._errors is None:
            self._errors = await self.get_error_logs()
        return self._errors

    async def get_error_logs(self) -> list[ErrorRecord]:
        stored = await self.store.get(ERROR_LOGS_KEY)
        if not isinstance(stored, list):
            return []
        records = []
        for item in stored:
            try:
                records.append(ErrorRecord.model_validate(item))
            except ValidationError:
                logger.debug("Skipping malformed error log entry")
        return records

    async def clear_error_logs(self) -> bool:
        async with self._lock:
            self._errors = []
            return await self.store.remove(ERROR_LOGS_KEY)

    # Global capture

    def install(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Route uncaught exceptions (sync, threads, asyncio tasks) to handle_error."""
        if self._previous_hooks is not None:
            return
        self._loop = loop or asyncio.get_running_loop()
        self._previous_hooks = (sys.excepthook, threading.excepthook, self._loop.get_exception_handler())
        sys.excepthook = self._sys_excepthook
        threading.excepthook = self._thread_excepthook
        self._loop.set_exception_handler(self._loop_exception_handler)
        logger.info("Global error capture installed")

    def uninstall(self) -> None:
        if self._previous_hooks is None:
            return
        sys.excepthook, threading.excepthook, loop_handler = self._previous_hooks
        if self._loop is not None:
            self._loop.set_exception_handler(loop_handler)
        self._previous_hooks = None
        self._loop = None

    def _dispatch(self, error: BaseException, context: str) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is not None:
            task = running.create_task(self.handle_error(error, context))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        elif self._loop is not None and self._loop.is_running():
            asyncio.run_coroutine_threadsafe(self.handle_error(error, context), self._loop)
        else:
            asyncio.run(self.handle_error(error, context))

    def _sys_excepthook(self, exc_type, exc, tb) -> None:
        if not issubclass(exc_type, KeyboardInterrupt):
            self._dispatch(exc, "Uncaught")
        if self._previous_hooks is not None:
            self._previous_hooks[0](exc_type, exc, tb)

    def _thread_excepthook(self, args: threading.ExceptHookArgs) -> None:
        if args.exc_value is not None:
            self._dispatch(args.exc_value, f"Thread {args.thread.name if args.thread else '?'}")

    def _loop_exception_handler(self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        error = context.get("exception") or RuntimeError(context.get("message", "Unhandled asyncio error"))
        task = loop.create_task(self.handle_error(error, "UnhandledRejection"))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)


