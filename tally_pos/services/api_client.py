# tally_pos/services/api_client.py
from typing import Any, Callable

import requests

from tally_pos.utils.settings import API_URL, HTTP_TIMEOUT_SECONDS
from tally_pos.utils.logging import get_logger

logger = get_logger(__name__)


class ApiClient:
    """
    Shared HTTP client for the backend REST API.

    Adds the bearer token of the current session to every request and calls
    ``on_unauthorized`` when the backend answers 401, so the session can be
    dropped and the UI sent back to login.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        token_provider: Callable[[], str | None] | None = None,
        on_unauthorized: Callable[[], None] | None = None,
        http: requests.Session | None = None,
    ):
        self.base_url = (base_url or API_URL).rstrip("/")
        self.timeout = timeout or HTTP_TIMEOUT_SECONDS
        self.token_provider = token_provider
        self.on_unauthorized = on_unauthorized
        self.http = http or requests.Session()

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        token = self.token_provider() if self.token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def request(self, method: str, path: str, params: dict | None = None, json: Any = None) -> Any:
        url = f"{self.base_url}{path}"
        logger.info(f"ApiClient {method} {url}")

        resp = self.http.request(
            method,
            url,
            params=params,
            json=json,
            headers=self._headers(),
            timeout=self.timeout,
        )

        if resp.status_code == 401 and self.on_unauthorized:
            logger.warning(f"Backend returned 401 for {method} {path}, expiring session")
            self.on_unauthorized()

        resp.raise_for_status()

        if resp.status_code == 204:
            return None
        return resp.json()

    def get(self, path: str, params: dict | None = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Any = None) -> Any:
        return self.request("POST", path, json=json)


def error_message(exc: requests.RequestException, default: str) -> str:
    """Human-readable message from a backend error body ({"message": str | [str]})."""
    resp = getattr(exc, "response", None)
    if resp is None:
        return default

    try:
        body = resp.json()
    except ValueError:
        return default

    message = body.get("message") if isinstance(body, dict) else None
    if isinstance(message, list):
        return "; ".join(str(m) for m in message) or default
    return message or default
