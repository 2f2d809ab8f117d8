from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ErrorKind(str, Enum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    SERVER = "server"
    UNKNOWN = "unknown"


class ErrorRecord(BaseModel):
    """Diagnostic snapshot of a captured failure, shaped like the collector payload."""

    model_config = ConfigDict(populate_by_name=True)

    message: str
    stack: str = ""
    context: str = "Unknown"
    timestamp: str
    user_agent: str = Field(default="", alias="userAgent")
    url: str = ""


class UserNotice(BaseModel):
    """Short message meant for the end user (toast); never carries technical detail."""

    message: str
    type: Literal["error", "warning", "info", "success"] = "error"
    kind: ErrorKind = ErrorKind.UNKNOWN
