"""
Error types and failure classification for audio generation.

Configuration problems stop a run before it starts. Everything that goes
wrong with a single task is reduced to an error kind string and recorded,
never raised past the scheduler.
"""

import re
import socket
from typing import Iterable, List, Optional

import requests

ERROR_KIND_TIMEOUT = "timeout"
ERROR_KIND_RATE_LIMIT = "rate_limit"
ERROR_KIND_NETWORK = "network"
ERROR_KIND_HTTP = "http_error"
ERROR_KIND_EMPTY_AUDIO = "empty_audio"
ERROR_KIND_WRITE = "write_error"
ERROR_KIND_CANCELLED = "cancelled"
ERROR_KIND_UNKNOWN = "unknown"

TRANSIENT_ERROR_KINDS = {
    ERROR_KIND_TIMEOUT,
    ERROR_KIND_RATE_LIMIT,
    ERROR_KIND_NETWORK,
}


def is_transient_error_kind(kind: str) -> bool:
    return str(kind or "").strip().lower() in TRANSIENT_ERROR_KINDS


class ConfigurationError(RuntimeError):
    """Missing or invalid configuration; the run must not start."""


class SynthesisError(RuntimeError):
    def __init__(
        self, message: str, *, error_kind: str, status_code: Optional[int] = None
    ) -> None:
        super().__init__(message)
        self.error_kind = str(error_kind or ERROR_KIND_UNKNOWN).strip().lower()
        self.status_code = status_code


def error_kind_for_status(status_code: int) -> str:
    """Map a non-success HTTP status to an error kind."""
    if status_code == 429:
        return ERROR_KIND_RATE_LIMIT
    if status_code in {408, 504}:
        return ERROR_KIND_TIMEOUT
    if status_code >= 500:
        return ERROR_KIND_NETWORK
    return ERROR_KIND_HTTP


def _iter_exception_chain(exc: BaseException) -> Iterable[BaseException]:
    seen = set()
    current = exc
    while current is not None and id(current) not in seen:
        yield current
        seen.add(id(current))
        next_exc = getattr(current, "__cause__", None) or getattr(current, "__context__", None)
        current = next_exc if isinstance(next_exc, BaseException) else None


def classify_synthesis_exception(exc: BaseException) -> str:
    """
    Reduce an exception raised while synthesizing or saving audio to an
    error kind.

    The exception chain is walked so wrapped transport errors are still
    recognised; message text is only consulted as a last resort.
    """
    messages: List[str] = []
    for item in _iter_exception_chain(exc):
        if isinstance(item, SynthesisError):
            return item.error_kind
        if isinstance(item, requests.exceptions.Timeout):
            return ERROR_KIND_TIMEOUT
        if isinstance(item, requests.exceptions.HTTPError):
            response = getattr(item, "response", None)
            status_code = getattr(response, "status_code", None)
            if status_code:
                return error_kind_for_status(int(status_code))
            return ERROR_KIND_HTTP
        if isinstance(item, requests.exceptions.ConnectionError):
            return ERROR_KIND_NETWORK
        if isinstance(item, (TimeoutError, socket.timeout)):
            return ERROR_KIND_TIMEOUT
        if isinstance(item, ConnectionError):
            return ERROR_KIND_NETWORK
        if isinstance(item, requests.exceptions.RequestException):
            return ERROR_KIND_NETWORK
        if isinstance(item, OSError):
            return ERROR_KIND_WRITE
        messages.append(str(item or ""))

    message = " ".join(messages).lower()
    if "429" in message or "rate limit" in message:
        return ERROR_KIND_RATE_LIMIT
    if re.search(r"\btimed? ?out\b|\btimeout\b", message):
        return ERROR_KIND_TIMEOUT
    if "connection" in message or "network" in message:
        return ERROR_KIND_NETWORK
    return ERROR_KIND_UNKNOWN
