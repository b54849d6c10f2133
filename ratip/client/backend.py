"""Async HTTP client for the RATIP backend REST API.

Only two endpoints are consumed: ``GET /health`` and ``POST /query``.  Every
failure is translated into one of the typed errors below so callers can tell
an unreachable backend apart from one that answered with an error.
"""

import json
import logging
from typing import Any, TypedDict

import httpx

logger = logging.getLogger(__name__)

DEFAULT_HEALTH_TIMEOUT_SECONDS = 5.0
DEFAULT_QUERY_TIMEOUT_SECONDS = 120.0


# --- Backend response types ---


class HealthPayload(TypedDict, total=False):
    status: str
    service: str
    timestamp: str


class QueryPayload(TypedDict, total=False):
    query: str
    response: str
    timestamp: str
    error: str


# --- Error taxonomy ---


class BackendError(Exception):
    """Base class for every failure talking to the backend."""


class ConnectivityError(BackendError):
    """The backend could not be reached (refused, DNS, timeout, protocol error)."""

    def __init__(self, url: str, detail: str) -> None:
        self.url = url
        self.detail = detail
        super().__init__(f"Cannot reach {url}: {detail}")


class MalformedResponseError(ConnectivityError):
    """The backend answered but the body was not the JSON we expect.

    Subclasses ConnectivityError because users are told the same thing in both cases.
    """


class ApplicationError(BackendError):
    """The backend was reachable but reported a failure (non-2xx)."""

    def __init__(self, status_code: int, error: str | None) -> None:
        self.status_code = status_code
        self.error = error
        super().__init__(f"HTTP {status_code}: {error or 'no error detail'}")


# --- Helpers ---


def _decode_object(response: httpx.Response) -> dict[str, Any]:
    """Decode a JSON object body or raise MalformedResponseError."""
    try:
        body: Any = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedResponseError(str(response.request.url), f"invalid JSON body: {e}") from e
    if not isinstance(body, dict):
        raise MalformedResponseError(str(response.request.url), f"expected a JSON object, got {type(body).__name__}")
    return body


def _error_field(response: httpx.Response) -> str | None:
    """Best-effort extraction of the ``error`` field from a failed response."""
    try:
        body: Any = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, str) and error:
            return error
    return None


# --- Client ---


class BackendClient:
    """Thin async wrapper around the two backend endpoints."""

    def __init__(
        self,
        base_url: str,
        health_timeout: float = DEFAULT_HEALTH_TIMEOUT_SECONDS,
        query_timeout: float = DEFAULT_QUERY_TIMEOUT_SECONDS,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.health_timeout = health_timeout
        self.query_timeout = query_timeout

    async def get_health(self) -> str:
        """Return the ``status`` field reported by ``GET /health``.

        Raises:
            ConnectivityError: transport failure.
            MalformedResponseError: 2xx with an unparsable body.
            ApplicationError: non-2xx status.
        """
        url = f"{self.base_url}/health"
        try:
            async with httpx.AsyncClient(timeout=self.health_timeout) as client:
                response = await client.get(url, headers={"Accept": "application/json"})
        except httpx.TimeoutException as e:
            raise ConnectivityError(url, f"timed out after {self.health_timeout}s") from e
        except httpx.HTTPError as e:
            raise ConnectivityError(url, str(e) or type(e).__name__) from e

        if not response.is_success:
            raise ApplicationError(response.status_code, _error_field(response))

        payload: HealthPayload = _decode_object(response)  # type: ignore[assignment]
        status = payload.get("status", "")
        return status if isinstance(status, str) else str(status)

    async def post_query(self, query: str) -> str:
        """Send a natural-language query and return the backend's ``response`` text.

        Raises:
            ConnectivityError: transport failure.
            MalformedResponseError: 2xx without a usable ``response`` field.
            ApplicationError: non-2xx status, carrying the server's ``error`` field if any.
        """
        url = f"{self.base_url}/query"
        logger.info("Submitting query to %s (%d chars)", url, len(query))
        try:
            async with httpx.AsyncClient(timeout=self.query_timeout) as client:
                response = await client.post(url, json={"query": query})
        except httpx.TimeoutException as e:
            raise ConnectivityError(url, f"timed out after {self.query_timeout}s") from e
        except httpx.HTTPError as e:
            raise ConnectivityError(url, str(e) or type(e).__name__) from e

        if not response.is_success:
            raise ApplicationError(response.status_code, _error_field(response))

        payload: QueryPayload = _decode_object(response)  # type: ignore[assignment]
        answer = payload.get("response")
        if not isinstance(answer, str):
            raise MalformedResponseError(url, "response body has no 'response' field")
        return answer
