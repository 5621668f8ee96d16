import asyncio
import inspect
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Protocol

from models import AuthorizationCode, Token, as_utc

logger = logging.getLogger(__name__)

REQUIRED_MODEL_METHODS = ("get_authorization_code", "revoke_authorization_code", "save_token")


class AuthorizationCodeModel(Protocol):
    """Storage capabilities the authorization code grant depends on"""

    # Methods may be plain functions or coroutines. For a given code at most
    # one revoke_authorization_code call may ever return True, across all
    # concurrent callers; single use is only as strong as that operation.

    def get_authorization_code(self, authorization_code: str) -> Optional[AuthorizationCode]:
        ...

    def revoke_authorization_code(self, code: AuthorizationCode) -> bool:
        ...

    def save_token(self, token: Token, client: Any, user: Any) -> Token:
        ...


def missing_model_methods(model: Any) -> list:
    """Names of required storage methods the model does not implement"""
    return [name for name in REQUIRED_MODEL_METHODS if not callable(getattr(model, name, None))]


async def maybe_await(value: Any) -> Any:
    """Await collaborator results that are awaitable, pass others through"""
    if inspect.isawaitable(value):
        return await value
    return value


class InMemoryModel:
    """In-process storage model backed by dicts, for a single worker and tests"""

    def __init__(self):
        self.authorization_codes: Dict[str, AuthorizationCode] = {}
        self.tokens: Dict[str, Token] = {}  # keyed by access token
        self.refresh_tokens: Dict[str, str] = {}  # refresh token -> access token
        self._revoke_lock = asyncio.Lock()

    def add_authorization_code(self, code: AuthorizationCode) -> None:
        self.authorization_codes[code.authorization_code] = code

    async def get_authorization_code(self, authorization_code: str) -> Optional[AuthorizationCode]:
        return self.authorization_codes.get(authorization_code)

    async def revoke_authorization_code(self, code: AuthorizationCode) -> bool:
        # Serialized per event loop: one winner per code
        async with self._revoke_lock:
            removed = self.authorization_codes.pop(code.authorization_code, None)
        if removed is None:
            return False

        logger.info(f"Authorization code revoked: {code.authorization_code[:8]}...")
        return True

    async def save_token(self, token: Token, client: Any, user: Any) -> Token:
        stored = token.model_copy(update={"client": client, "user": user})
        self.tokens[stored.access_token] = stored
        if stored.refresh_token:
            self.refresh_tokens[stored.refresh_token] = stored.access_token
        return stored

    def get_token(self, access_token: str) -> Optional[Token]:
        return self.tokens.get(access_token)

    def purge_expired(self, now: datetime) -> int:
        """Drop expired codes and tokens, returning how many were removed"""
        expired_codes = [
            key for key, code in self.authorization_codes.items()
            if isinstance(code.expires_at, datetime) and as_utc(code.expires_at) <= now
        ]
        for key in expired_codes:
            del self.authorization_codes[key]

        # A token lives as long as its longest-lived credential
        expired_tokens = [
            key for key, token in self.tokens.items()
            if max(token.access_token_expires_at, token.refresh_token_expires_at or token.access_token_expires_at) <= now
        ]
        for key in expired_tokens:
            token = self.tokens.pop(key)
            if token.refresh_token:
                self.refresh_tokens.pop(token.refresh_token, None)

        if expired_codes or expired_tokens:
            logger.info(f"Cleaned up {len(expired_codes)} codes, {len(expired_tokens)} tokens")
        return len(expired_codes) + len(expired_tokens)
