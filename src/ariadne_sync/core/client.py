"""HTTP client for the Notion REST API.

Only the handful of endpoints the sync engine needs are wrapped:
database query/retrieve/update and page create/update/archive.

Every request goes through ``_request()``, which

1. waits for the injected ``RateLimiter``,
2. retries ``429 Too Many Requests`` up to ``max_retries`` times, honouring
   the ``Retry-After`` header when present and falling back to exponential
   backoff otherwise,
3. maps every other error response to an ``ariadne_sync.errors`` exception.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, Callable

import requests

from ..errors import (
    AuthenticationError,
    RateLimitExceeded,
    RemoteError,
    RemoteNotFoundError,
    RemoteValidationError,
)
from .rate_limit import FixedIntervalRateLimiter, RateLimiter

if TYPE_CHECKING:
    from ..config import Config

logger = logging.getLogger(__name__)

PAGE_SIZE = 100
BACKOFF_BASE = 1.0
BACKOFF_MAX = 30.0


class NotionClient:
    def __init__(
        self,
        config: Config,
        rate_limiter: RateLimiter | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.rate_limiter = rate_limiter or FixedIntervalRateLimiter(
            config.request_interval
        )
        self._sleep = sleep
        self._session: requests.Session | None = None

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = self._create_session()
        return self._session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(
            {
                "Authorization": f"Bearer {self.config.api_key}",
                "Notion-Version": self.config.notion_version,
                "Content-Type": "application/json",
            }
        )
        return session

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(
        self, method: str, endpoint: str, body: dict | None = None
    ) -> dict[str, Any]:
        """
        Send one API request, retrying capacity errors.

        Raises:
            RateLimitExceeded: If every retry was answered with 429.
            AuthenticationError: On 401/403.
            RemoteValidationError: On 400.
            RemoteNotFoundError: On 404.
            RemoteError: On any other failure, including network errors.
        """
        url = f"{self.config.api_url.rstrip('/')}{endpoint}"
        attempt = 0
        while True:
            self.rate_limiter.acquire()
            try:
                response = self.session.request(
                    method, url, json=body, timeout=(10, 60)
                )
            except requests.RequestException as exc:
                raise RemoteError(
                    f"{method} {endpoint} failed: {exc}"
                ) from exc

            if response.status_code == 429:
                if attempt >= self.config.max_retries:
                    raise RateLimitExceeded(
                        f"{method} {endpoint} still rate limited after "
                        f"{self.config.max_retries} retries",
                        status_code=429,
                        code="rate_limited",
                    )
                delay = self._retry_delay(response, attempt)
                attempt += 1
                logger.warning(
                    "Rate limited, retrying in %.1fs (attempt %d/%d)",
                    delay,
                    attempt,
                    self.config.max_retries,
                )
                self._sleep(delay)
                continue

            if response.status_code >= 400:
                raise self._error_for(method, endpoint, response)

            try:
                return response.json()
            except ValueError as exc:
                raise RemoteError(
                    f"Failed to parse response of {method} {endpoint}: "
                    f"{response.text[:200]}"
                ) from exc

    @staticmethod
    def _retry_delay(response: requests.Response, attempt: int) -> float:
        """Seconds to wait before retry number ``attempt + 1``."""
        retry_after = response.headers.get("Retry-After")
        if retry_after is not None:
            try:
                hint = float(retry_after)
            except ValueError:
                hint = None
            if hint is not None and hint >= 0:
                return min(hint + 0.5 * (attempt + 1), BACKOFF_MAX)
        return min(BACKOFF_BASE * (2**attempt), BACKOFF_MAX)

    @staticmethod
    def _error_for(
        method: str, endpoint: str, response: requests.Response
    ) -> RemoteError:
        status = response.status_code
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        code = payload.get("code") if isinstance(payload, dict) else None
        message = (
            payload.get("message") if isinstance(payload, dict) else None
        ) or response.text[:200]
        text = f"Notion API error ({status}) on {method} {endpoint}: {message}"

        match status:
            case 400:
                return RemoteValidationError(text, status, code)
            case 401 | 403:
                return AuthenticationError(text, status, code)
            case 404:
                return RemoteNotFoundError(text, status, code)
            case _:
                return RemoteError(text, status, code)

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    def query_database(
        self,
        database_id: str,
        filter: dict | None = None,
        start_cursor: str | None = None,
        page_size: int = PAGE_SIZE,
    ) -> dict[str, Any]:
        """
        Fetch one page of database records.

        Returns:
            Dict with keys: results (list of page objects), has_more,
            next_cursor
        """
        body: dict[str, Any] = {"page_size": page_size}
        if filter:
            body["filter"] = filter
        if start_cursor:
            body["start_cursor"] = start_cursor
        return self._request(
            "POST", f"/databases/{database_id}/query", body
        )

    def retrieve_database(self, database_id: str) -> dict[str, Any]:
        """
        Get database metadata, including its property schema.
        """
        return self._request("GET", f"/databases/{database_id}")

    def update_database(
        self, database_id: str, properties: dict[str, Any]
    ) -> dict[str, Any]:
        """
        Add or rename database properties.
        """
        return self._request(
            "PATCH",
            f"/databases/{database_id}",
            {"properties": properties},
        )

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    def create_page(
        self, database_id: str, properties: dict[str, Any]
    ) -> dict[str, Any]:
        """
        Create a page in a database.

        Returns:
            The created page object (``id``, ``last_edited_time``, ...)
        """
        return self._request(
            "POST",
            "/pages",
            {"parent": {"database_id": database_id}, "properties": properties},
        )

    def update_page(
        self, page_id: str, properties: dict[str, Any]
    ) -> dict[str, Any]:
        """
        Overwrite the given properties of a page.

        Returns:
            The updated page object (``id``, ``last_edited_time``, ...)
        """
        return self._request(
            "PATCH", f"/pages/{page_id}", {"properties": properties}
        )

    def archive_page(self, page_id: str) -> bool:
        """
        Archive (soft-delete) a page.

        Returns:
            True if successful
        """
        self._request("PATCH", f"/pages/{page_id}", {"archived": True})
        return True
