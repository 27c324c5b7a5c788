"""HTTP plumbing shared by the registry and control-plane clients."""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import requests

from .error_handler import ApiError, UnhandledResponseError
from .logger import get_logger

logger = get_logger("api_client")

DEFAULT_TIMEOUT = 30
USER_AGENT = "cf-provider-cli"


@dataclass(frozen=True)
class ApiResponse:
    """Status code and raw body of an API call.

    Callers branch on ``status_code`` and pass anything they do not
    recognise to ``raise_unhandled``.
    """

    status_code: int
    body: str

    def json(self) -> Any:
        if not self.body:
            return {}
        return json.loads(self.body)

    def error_message(self) -> str:
        """The ``error`` field of a typed error payload, falling back to the raw body."""
        try:
            payload = self.json()
        except ValueError:
            return self.body
        if isinstance(payload, dict) and payload.get("error"):
            return str(payload["error"])
        return self.body


def raise_unhandled(response: ApiResponse, service: str = "Common Fate API") -> None:
    """Raise for a status code the caller has no branch for."""
    raise UnhandledResponseError(response.status_code, response.body, service)


def raise_api_error(response: ApiResponse) -> None:
    """Raise the server's typed error message verbatim."""
    raise ApiError(response.error_message(), response.status_code)


class JSONClient:
    """Minimal JSON-over-HTTPS client returning ``ApiResponse`` objects."""

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)
        self.timeout = timeout

    def request(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> ApiResponse:
        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {url}")
        response = self.session.request(
            method, url, json=body, params=params, timeout=self.timeout
        )
        logger.debug(f"{method} {url} -> {response.status_code}")
        return ApiResponse(status_code=response.status_code, body=response.text)


def check_response(
    response: ApiResponse,
    *expected: int,
    error_statuses: Tuple[int, ...] = (400, 403, 404, 409, 500),
    service: str = "Common Fate API",
) -> ApiResponse:
    """Return ``response`` if its status is one of ``expected``.

    Statuses in ``error_statuses`` carry a typed error payload whose message
    is raised verbatim. Anything else is an unhandled response.
    """
    if response.status_code in expected:
        return response
    if response.status_code in error_statuses:
        raise_api_error(response)
    raise_unhandled(response, service)
