from typing import Any

from pydantic import BaseModel, Field


class ApiResponse(BaseModel):
    """Normalized result of every call made through the API client."""

    success: bool
    data: Any = None
    error: str | None = None
    status: int | None = None
    queued: bool = False


class RequestOptions(BaseModel):
    method: str = "GET"
    params: dict[str, Any] | None = None
    json_body: Any = None
    headers: dict[str, str] = Field(default_factory=dict)


class QueuedRequest(BaseModel):
    """A request deferred while offline, replayed on reconnect."""

    target: str
    options: RequestOptions
    enqueued_at: float
