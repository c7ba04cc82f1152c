"""Microsoft Graph API client.

Calls the Graph mail endpoints over HTTP and returns decoded JSON payloads.
Each call is a single attempt: failures are logged once and raised as
`RemoteFetchError`, never retried here.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence
from urllib.parse import quote

import requests

from OutlookSearch.core.errors import RemoteFetchError
from OutlookSearch.utils.log import log

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
DEFAULT_TIMEOUT = 30.0
MAX_PAGE_SIZE = 1000

HEADERS = {
    "User-Agent": "outlook-search/0.1",
    "Accept": "application/json",
}


class GraphApiClient:
    """Low-level HTTP client for the Microsoft Graph mail API.

    Responsible only for making requests and returning raw JSON payloads.
    Mapping into `Message` objects is handled by the parser module.
    """

    def __init__(
        self,
        access_token: str,
        *,
        base_url: str = GRAPH_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the client with a reusable HTTP session.

        Args:
            access_token: OAuth bearer token with Mail.Read scope.
            base_url: Graph API root including the version segment.
            timeout: Request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers.update(HEADERS)
        self._session.headers["Authorization"] = f"Bearer {access_token}"

    def close(self) -> None:
        """Close the underlying HTTP session and release pooled connections.
        """
        self._session.close()

    def __enter__(self) -> GraphApiClient:
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager and close session."""
        self.close()

    def fetch_messages_page(
        self,
        *,
        filter: Optional[str] = None,
        search: Optional[str] = None,
        cursor: Optional[str] = None,
        page_size: int = 50,
        fields: Sequence[str] = (),
    ) -> dict[str, Any]:
        """Fetch one page of `/me/messages`.

        Args:
            filter: OData `$filter` expression.
            search: KQL `$search` expression.
            cursor: `$skiptoken` from the previous page's `@odata.nextLink`.
            page_size: `$top`, clamped to the Graph maximum.
            fields: `$select` properties.

        Returns:
            Graph collection payload (`value`, optional `@odata.nextLink`).

        Raises:
            RemoteFetchError: On transport failure or a non-success response.
        """
        params: dict[str, str] = {"$top": str(max(1, min(page_size, MAX_PAGE_SIZE)))}
        if fields:
            params["$select"] = ",".join(fields)
        if filter:
            params["$filter"] = filter
        if search:
            params["$search"] = search
        if cursor:
            params["$skiptoken"] = cursor

        log.debug(
            "Graph fetch messages: filter=%s search=%s cursor=%s top=%s",
            bool(filter),
            bool(search),
            "[provided]" if cursor else None,
            params["$top"],
        )
        return self._get("/me/messages", params=params)

    def get_message(self, message_id: str, *, fields: Sequence[str] = ()) -> dict[str, Any]:
        """Fetch a single message by id.

        Raises:
            RemoteFetchError: On transport failure or a non-success response.
        """
        params = {"$select": ",".join(fields)} if fields else None
        return self._get(f"/me/messages/{quote(message_id, safe='')}", params=params)

    def list_categories(self) -> dict[str, Any]:
        """Fetch the mailbox master category list.

        Raises:
            RemoteFetchError: On transport failure or a non-success response.
        """
        return self._get("/me/outlook/masterCategories")

    def _get(self, path: str, *, params: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
        """Issue one GET request and decode the JSON body.

        Args:
            path: Path below `base_url`.
            params: Query parameters.

        Returns:
            Decoded JSON object.

        Raises:
            RemoteFetchError: On transport failure, non-success status, or a
                body that is not a JSON object.
        """
        url = f"{self.base_url}{path}"
        try:
            resp = self._session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            log.error("Graph request failed: path=%s error=%s", path, e)
            raise RemoteFetchError(f"Graph request failed: {e}") from e

        if not resp.ok:
            message = _error_message(resp)
            log.error("Graph request failed: path=%s status=%s message=%s", path, resp.status_code, message)
            raise RemoteFetchError(
                f"Graph API error {resp.status_code}: {message}",
                status_code=resp.status_code,
            )

        try:
            payload = resp.json()
        except ValueError as e:
            log.error("Graph response is not JSON: path=%s status=%s", path, resp.status_code)
            raise RemoteFetchError("Graph API returned invalid JSON", status_code=resp.status_code) from e
        if not isinstance(payload, dict):
            raise RemoteFetchError("Graph API returned unexpected payload", status_code=resp.status_code)
        log.debug("Graph response ok: path=%s status=%s", path, resp.status_code)
        return payload


def _error_message(resp: requests.Response) -> str:
    """Extract the Graph error message from an error response."""
    try:
        payload = resp.json()
    except ValueError:
        return resp.text.strip() or resp.reason or "unknown error"
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict):
        code = error.get("code")
        message = error.get("message")
        if code and message:
            return f"{code}: {message}"
        if message:
            return str(message)
    return resp.reason or "unknown error"
