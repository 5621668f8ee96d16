import logging
import secrets
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, Union

from config import Config
from errors import OAuthError
from models import Token, as_utc, utc_now
from storage import AuthorizationCodeModel, maybe_await

logger = logging.getLogger(__name__)

# (user, client, scope) -> resolved scope, or None/False to reject
ScopePolicy = Callable[[Any, Any, str], Union[Optional[str], Awaitable[Optional[str]]]]
# (client, user, scope) -> token string
TokenGenerator = Callable[[Any, Any, str], Union[Optional[str], Awaitable[Optional[str]]]]


def generate_random_token() -> str:
    return secrets.token_urlsafe(32)


class TokenIssuer:
    """Builds the token for a consumed authorization code and persists it"""

    def __init__(
        self,
        model: AuthorizationCodeModel,
        config: Config,
        scope_policy: Optional[ScopePolicy] = None,
        access_token_generator: Optional[TokenGenerator] = None,
        refresh_token_generator: Optional[TokenGenerator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.model = model
        self.config = config
        self.scope_policy = scope_policy
        self.access_token_generator = access_token_generator
        self.refresh_token_generator = refresh_token_generator
        self.clock = clock or utc_now

    async def save_token(self, user: Any, client: Any, authorization_code: str, scope: str) -> Token:
        """Issue and persist a token for user and client"""
        # authorization_code is kept for audit although the code is already revoked
        access_scope = await self.validate_scope(user, client, scope)
        access_token = await self.generate_access_token(client, user, scope)
        refresh_token = await self.generate_refresh_token(client, user, scope)

        now = as_utc(self.clock())
        token = Token(
            access_token=access_token,
            access_token_expires_at=self.get_access_token_expires_at(now),
            refresh_token=refresh_token,
            refresh_token_expires_at=self.get_refresh_token_expires_at(now) if refresh_token else None,
            scope=access_scope,
            authorization_code=authorization_code,
        )

        saved = await maybe_await(self.model.save_token(token, client, user))
        if saved is None:
            raise OAuthError.collaborator_contract("Server error: `save_token()` did not return a token")
        logger.debug(f"Token persisted for authorization code {authorization_code[:8]}...")
        return saved

    async def validate_scope(self, user: Any, client: Any, scope: str) -> str:
        if self.scope_policy is None:
            return scope

        resolved = await maybe_await(self.scope_policy(user, client, scope))
        if not resolved:
            raise OAuthError.invalid_scope("Invalid scope: Requested scope is invalid")

        if not isinstance(resolved, str):
            raise OAuthError.collaborator_contract("Server error: scope policy did not return a string")
        return resolved

    async def generate_access_token(self, client: Any, user: Any, scope: str) -> str:
        if self.access_token_generator is not None:
            token = await maybe_await(self.access_token_generator(client, user, scope))
            if token:
                return token
        return generate_random_token()

    async def generate_refresh_token(self, client: Any, user: Any, scope: str) -> Optional[str]:
        if not self.config.issue_refresh_token:
            return None

        if self.refresh_token_generator is not None:
            token = await maybe_await(self.refresh_token_generator(client, user, scope))
            if token:
                return token
        return generate_random_token()

    def get_access_token_expires_at(self, now: datetime) -> datetime:
        return now + self.config.get_oauth_token_expiry_delta()

    def get_refresh_token_expires_at(self, now: datetime) -> datetime:
        return now + self.config.get_oauth_refresh_token_expiry_delta()
