"""Base HTTP client for the document service API."""

from __future__ import annotations

import asyncio
import logging
import random
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

import httpx
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from docsync.domain.exceptions.domain_exceptions import RemoteServiceError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from typing import Self

    from docsync.config.remote import RemoteApiConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

# HTTP status codes that should trigger a retry
RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}

DEFAULT_BASE_DELAY = 0.5  # seconds
DEFAULT_MAX_DELAY = 10.0  # seconds
DEFAULT_JITTER = 0.1  # 10% jitter


def _is_retryable_error(exc: Exception) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES
    return isinstance(exc, (httpx.TransportError, httpx.TimeoutException))


def _calculate_delay(attempt: int, base_delay: float, max_delay: float, jitter: float) -> float:
    """Exponential backoff capped at ``max_delay`` plus random jitter."""
    delay = min(base_delay * (2**attempt), max_delay)
    return delay + delay * jitter * random.random()


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    *,
    max_retries: int = 0,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    jitter: float = DEFAULT_JITTER,
    operation_name: str = "operation",
) -> T:
    """Execute an async function, retrying transient HTTP failures.

    Non-retryable errors and the final failure are re-raised unchanged; the
    caller decides how to map them.
    """
    attempt = 0
    while True:
        try:
            return await func()
        except Exception as e:
            if not _is_retryable_error(e) or attempt >= max_retries:
                raise

            delay = _calculate_delay(attempt, base_delay, max_delay, jitter)
            logger.warning(
                "remote_retry_attempt",
                extra={
                    "operation": operation_name,
                    "attempt": attempt + 1,
                    "max_retries": max_retries,
                    "delay_seconds": round(delay, 2),
                    "error": str(e),
                },
            )
            attempt += 1
            await asyncio.sleep(delay)


def _to_remote_error(exc: Exception, operation_name: str) -> RemoteServiceError:
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return RemoteServiceError(
            f"{operation_name} failed with HTTP {status}",
            status_code=status,
            details={"operation": operation_name, "url": str(exc.request.url)},
        )
    return RemoteServiceError(
        f"{operation_name} failed: {exc}",
        details={"operation": operation_name, "error_type": type(exc).__name__},
    )


class RemoteApiClient:
    """Async HTTP client shared by the per-kind remote APIs.

    Owns one ``httpx.AsyncClient``. Use it as an async context manager or call
    :meth:`aclose` when done.
    """

    def __init__(
        self,
        api_url: str,
        api_token: str | None = None,
        timeout: float = 30.0,
        *,
        max_retries: int = 0,
        retry_base_delay: float = DEFAULT_BASE_DELAY,
        retry_max_delay: float = DEFAULT_MAX_DELAY,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.api_token = api_token
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.retry_max_delay = retry_max_delay
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_config(
        cls, config: RemoteApiConfig, *, transport: httpx.AsyncBaseTransport | None = None
    ) -> RemoteApiClient:
        return cls(
            config.api_url,
            config.api_token,
            config.timeout_sec,
            max_retries=config.max_retries,
            transport=transport,
        )

    async def __aenter__(self) -> Self:
        _ = self.client
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Content-Type": "application/json", "Accept": "application/json"}
            if self.api_token:
                headers["Authorization"] = f"Bearer {self.api_token}"
            self._client = httpx.AsyncClient(
                base_url=self.api_url,
                headers=headers,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        operation_name: str | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body (None when empty).

        Raises:
            RemoteServiceError: On transport errors, non-2xx responses and
                undecodable bodies.
        """
        name = operation_name or f"{method.lower()} {path}"
        clean_params = {
            k: v.value if isinstance(v, Enum) else v
            for k, v in (params or {}).items()
            if v is not None
        } or None

        async def _send() -> httpx.Response:
            response = await self.client.request(method, path, json=json, params=clean_params)
            response.raise_for_status()
            return response

        try:
            response = await retry_with_backoff(
                _send,
                max_retries=self.max_retries,
                base_delay=self.retry_base_delay,
                max_delay=self.retry_max_delay,
                operation_name=name,
            )
        except httpx.HTTPError as e:
            logger.warning("remote_request_failed", extra={"operation": name, "error": str(e)})
            raise _to_remote_error(e, name) from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RemoteServiceError(
                f"{name} returned a malformed body",
                status_code=response.status_code,
                details={"operation": name},
            ) from e

    @staticmethod
    def parse(adapter: TypeAdapter[T], data: Any, operation_name: str) -> T:
        """Validate a response body, mapping schema errors to RemoteServiceError."""
        try:
            return adapter.validate_python(data)
        except PydanticValidationError as e:
            raise RemoteServiceError(
                f"{operation_name} returned an unexpected payload",
                details={"operation": operation_name, "errors": e.error_count()},
            ) from e
