"""
API client helpers.

``api_request`` wraps one JSON HTTP call with role-aware headers and turns
non-2xx responses into ``ApiError`` so the classifier can see the status.
``api_with_recovery`` runs it through the retry engine.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

import httpx

from aula_resilience.exception.retry import RecoveryResult, RetryOptions, with_retry
from aula_resilience.exception.service import ServiceError

if TYPE_CHECKING:
    from aula_resilience.exception.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)

HttpMethod = Literal["GET", "POST", "PUT", "DELETE", "PATCH"]

DEFAULT_TIMEOUT_SECONDS = 10.0


class ApiError(Exception):
    """Non-2xx HTTP response."""

    def __init__(self, status: int, status_text: str, message: str | None = None):
        super().__init__(message or f"API Error: {status} {status_text}")
        self.status = status
        self.status_text = status_text


@dataclass
class ApiResponse:
    """Decoded JSON response."""

    success: bool
    data: Any = None
    message: str | None = None


@dataclass
class ApiRequestOptions:
    """Options for one API request."""

    method: HttpMethod = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None
    user_role: str | None = None
    timeout: float = DEFAULT_TIMEOUT_SECONDS


def _build_headers(headers: dict[str, str] | None, user_role: str | None) -> dict[str, str]:
    request_headers = {"Content-Type": "application/json", **(headers or {})}
    if user_role:
        request_headers["X-User-Role"] = user_role
    return request_headers


def _encode_body(body: Any, method: str) -> str | None:
    if body is None or method == "GET":
        return None
    return body if isinstance(body, str) else json.dumps(body)


async def api_request(
    url: str,
    method: HttpMethod = "GET",
    headers: dict[str, str] | None = None,
    body: Any = None,
    user_role: str | None = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    *,
    client: httpx.AsyncClient | None = None,
) -> ApiResponse:
    """
    Perform one JSON request.

    Raises:
        ApiError: the server answered with a non-2xx status
        ServiceError: a 2xx body that is not valid JSON (not retryable)
        httpx.TransportError: the request never got a response
    """
    request_headers = _build_headers(headers, user_role)
    content = _encode_body(body, method)

    owns_client = client is None
    http_client = client or httpx.AsyncClient()
    try:
        response = await http_client.request(
            method,
            url,
            headers=request_headers,
            content=content,
            timeout=timeout,
        )
    except httpx.HTTPError as e:
        logger.error(f"API request failed: {method} {url} | error={e}")
        raise
    finally:
        if owns_client:
            await http_client.aclose()

    if not response.is_success:
        logger.error(f"API request failed: {method} {url} | status={response.status_code}")
        raise ApiError(response.status_code, response.reason_phrase)

    try:
        data = response.json() if response.content else None
    except ValueError as e:
        logger.error(f"API response is not JSON: {method} {url} | status={response.status_code}")
        raise ServiceError(
            f"Malformed JSON response from {url}",
            "MALFORMED_RESPONSE",
            retryable=False,
            status_code=response.status_code,
            cause=e,
        ) from e
    message = data.get("message") if isinstance(data, dict) else None
    return ApiResponse(success=True, data=data, message=message)


async def api_with_recovery(
    url: str,
    request: ApiRequestOptions | None = None,
    options: RetryOptions | None = None,
    *,
    client: httpx.AsyncClient | None = None,
    breaker: CircuitBreaker | None = None,
) -> RecoveryResult[ApiResponse]:
    """api_request with retry, backoff and optional circuit breaker."""
    request = request or ApiRequestOptions()
    return await with_retry(
        lambda: api_request(
            url,
            request.method,
            request.headers,
            request.body,
            request.user_role,
            request.timeout,
            client=client,
        ),
        options,
        breaker=breaker,
    )
