import logging
from datetime import datetime
from typing import Callable, Optional

from config import Config
from errors import ErrorKind, OAuthError
from models import AuthorizationCode, Client, GrantRequest, Token
from storage import AuthorizationCodeModel, maybe_await, missing_model_methods
from tokens import ScopePolicy, TokenGenerator, TokenIssuer
from validation import INVALID_CODE_MESSAGE, CodeValidator, RedirectUriChecker

logger = logging.getLogger(__name__)


class AuthorizationCodeGrant:
    """OAuth 2.0 authorization code grant (RFC 6749 section 4.1.3) with optional PKCE"""

    def __init__(
        self,
        model: AuthorizationCodeModel,
        config: Optional[Config] = None,
        scope_policy: Optional[ScopePolicy] = None,
        access_token_generator: Optional[TokenGenerator] = None,
        refresh_token_generator: Optional[TokenGenerator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if model is None:
            raise OAuthError.configuration("Missing parameter: `model`")

        missing = missing_model_methods(model)
        if missing:
            raise OAuthError.configuration(f"Invalid argument: model does not implement `{missing[0]}()`")

        self.model = model
        self.config = config or Config()
        self.validator = CodeValidator(model, clock=clock)
        self.redirect_uri_checker = RedirectUriChecker()
        self.issuer = TokenIssuer(
            model,
            self.config,
            scope_policy=scope_policy,
            access_token_generator=access_token_generator,
            refresh_token_generator=refresh_token_generator,
            clock=clock,
        )

    async def handle(self, request: GrantRequest, client: Client) -> Token:
        """Exchange the authorization code carried by ``request`` for a token"""
        if request is None:
            raise OAuthError.configuration("Missing parameter: `request`")

        if client is None:
            raise OAuthError.configuration("Missing parameter: `client`")

        try:
            code = await self.validator.get_authorization_code(request, client)
            self.redirect_uri_checker.check(request, code)
            await self.revoke_authorization_code(code)

            # The code is consumed from here on, even if issuance fails
            token = await self.issuer.save_token(code.user, client, code.authorization_code, code.scope or "")
        except OAuthError as e:
            if e.kind is ErrorKind.COLLABORATOR_CONTRACT:
                logger.error(f"Storage integration defect during code exchange: {e.message}")
            raise

        logger.info(f"Access token issued for client {getattr(client, 'id', None)}")
        return token

    async def revoke_authorization_code(self, code: AuthorizationCode) -> AuthorizationCode:
        """Consume the code so it can never be exchanged again"""
        status = await maybe_await(self.model.revoke_authorization_code(code))
        # Falsy means another exchange already consumed it
        if not status:
            logger.warning(f"Authorization code already consumed: {code.authorization_code[:8]}...")
            raise OAuthError.invalid_grant(INVALID_CODE_MESSAGE)

        return code
