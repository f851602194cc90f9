# tally_pos/services/auth_client.py
import requests

from tally_pos.domain.errors import AuthenticationFailed, RemoteUnreachable
from tally_pos.services.api_client import ApiClient, error_message
from tally_pos.utils.logging import get_logger

logger = get_logger(__name__)


class AuthClient:
    def __init__(self, api: ApiClient):
        self.api = api

    def login(self, username: str, password: str) -> str:
        """Exchange credentials for an access token."""
        try:
            data = self.api.post("/auth/login", json={"username": username, "password": password})
        except (requests.ConnectionError, requests.Timeout) as e:
            raise RemoteUnreachable("Cannot reach the server") from e
        except requests.HTTPError as e:
            message = error_message(e, "Login failed. Check your username and password.")
            logger.warning(f"Login rejected for {username}: {message}")
            raise AuthenticationFailed(message) from e

        token = (data or {}).get("access_token")
        if not token:
            raise AuthenticationFailed("Login response did not contain a token")
        return token
