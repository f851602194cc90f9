# tally_pos/services/session_service.py
import json
import os
import time
from typing import Dict

from jose import jwt
from jose.exceptions import JWTError
from pydantic import ValidationError

from tally_pos.domain.errors import AuthenticationFailed, Forbidden, NotAuthenticated
from tally_pos.domain.schemas import Identity
from tally_pos.services.auth_client import AuthClient
from tally_pos.utils.settings import SESSION_FILE
from tally_pos.utils.logging import get_logger

logger = get_logger(__name__)

ROLE_HOME: Dict[str, str] = {
    "admin": "/dashboard",
    "kasir": "/kasir",
}
LOGIN_PATH = "/login"


def decode_token(token: str) -> Identity | None:
    """Claims of ``token`` without signature verification; the backend verifies."""
    try:
        claims = jwt.get_unverified_claims(token)
        return Identity.model_validate(claims)
    except (JWTError, ValidationError) as e:
        logger.warning(f"Could not decode access token: {e}")
        return None


def is_token_expired(token: str, now: float | None = None) -> bool:
    identity = decode_token(token)
    if not identity or identity.exp is None:
        return True
    return identity.exp < (now if now is not None else time.time())


class TokenStore:
    """Persists the raw access token between terminal restarts."""

    def __init__(self, path: str | None = None):
        self.path = path or SESSION_FILE

    def load(self) -> str | None:
        try:
            with open(self.path, encoding="utf-8") as f:
                return json.load(f).get("token")
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return None

    def save(self, token: str) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({"token": token}, f)

    def clear(self) -> None:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass


class Session:
    """
    Identity of the logged-in user, owned by the terminal shell.

    Restored from the token store at startup; login/logout keep memory and
    storage in sync. Passed explicitly to whoever needs it.
    """

    def __init__(self, store: TokenStore, auth_client: AuthClient | None = None):
        self.store = store
        self.auth_client = auth_client
        self._token: str | None = None
        self._identity: Identity | None = None

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def is_authenticated(self) -> bool:
        return self._identity is not None

    def restore(self, now: float | None = None) -> Identity | None:
        token = self.store.load()

        if token and not is_token_expired(token, now):
            self._token = token
            self._identity = decode_token(token)
            logger.info(f"Session restored for {self._identity.username}")
        else:
            if token:
                logger.info("Stored session expired, clearing it")
            self._drop()

        return self._identity

    def login(self, username: str, password: str) -> str:
        if not self.auth_client:
            raise RuntimeError("Session has no auth client")

        token = self.auth_client.login(username, password)
        identity = decode_token(token)
        if not identity:
            raise AuthenticationFailed("Server returned an unreadable token")

        self._token = token
        self._identity = identity
        self.store.save(token)

        logger.info(f"User {identity.username} logged in as {identity.role}")
        return self.home_path()

    def logout(self) -> str:
        if self._identity:
            logger.info(f"User {self._identity.username} logged out")
        self._drop()
        return LOGIN_PATH

    def expire(self) -> None:
        """Backend rejected the token (401)."""
        if self._identity:
            logger.warning(f"Session of {self._identity.username} expired")
        self._drop()

    def home_path(self) -> str:
        if not self._identity:
            return LOGIN_PATH
        return ROLE_HOME.get(self._identity.role, LOGIN_PATH)

    def require_role(self, *roles: str) -> Identity:
        if not self._identity:
            raise NotAuthenticated()
        if roles and self._identity.role not in roles:
            raise Forbidden(f"Role {self._identity.role} cannot access this page")
        return self._identity

    def _drop(self) -> None:
        self._token = None
        self._identity = None
        self.store.clear()
