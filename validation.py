import logging
import re
from datetime import datetime
from typing import Any, Callable, Optional

import pkce
from errors import OAuthError
from models import AuthorizationCode, Client, GrantRequest, as_utc, utc_now
from storage import AuthorizationCodeModel, maybe_await

logger = logging.getLogger(__name__)

# Visible ASCII without space (RFC 6749 Appendix A, minus SP)
VSCHAR_PATTERN = re.compile(r"^[\x21-\x7E]+$")
# Anything carrying a scheme counts as a URI
URI_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]+:")

INVALID_CODE_MESSAGE = "Invalid grant: authorization code is invalid"


def is_vschar(value: Any) -> bool:
    return isinstance(value, str) and VSCHAR_PATTERN.match(value) is not None


def is_uri(value: Any) -> bool:
    return isinstance(value, str) and URI_PATTERN.match(value) is not None


class CodeValidator:
    """Fetches an authorization code and checks it against the token request"""

    def __init__(self, model: AuthorizationCodeModel, clock: Optional[Callable[[], datetime]] = None):
        self.model = model
        self.clock = clock or utc_now

    async def get_authorization_code(self, request: GrantRequest, client: Client) -> AuthorizationCode:
        """Return the stored code once it is proven usable by client"""
        # First failure wins. Unknown codes and codes owned by another client
        # fail identically so a caller cannot tell which codes exist.
        code_param = request.code
        if not code_param:
            raise OAuthError.malformed_request("Missing parameter: `code`")

        if not is_vschar(code_param):
            raise OAuthError.malformed_request("Invalid parameter: `code`")

        code = await maybe_await(self.model.get_authorization_code(code_param))
        if not code:
            logger.debug(f"Authorization code not found: {code_param[:8]}...")
            raise OAuthError.invalid_grant(INVALID_CODE_MESSAGE)

        if getattr(code, "client", None) is None:
            raise OAuthError.collaborator_contract(
                "Server error: `get_authorization_code()` did not return a `client` object"
            )

        if getattr(code, "user", None) is None:
            raise OAuthError.collaborator_contract(
                "Server error: `get_authorization_code()` did not return a `user` object"
            )

        stored_client_id = getattr(code.client, "id", None)
        if stored_client_id is None:
            raise OAuthError.collaborator_contract(
                "Server error: `get_authorization_code()` returned a `client` without an `id`"
            )

        if stored_client_id != getattr(client, "id", None):
            raise OAuthError.invalid_grant(INVALID_CODE_MESSAGE)

        self._check_expiry(code)

        if code.redirect_uri and not is_uri(code.redirect_uri):
            raise OAuthError.invalid_grant("Invalid grant: `redirect_uri` is not a valid URI")

        # NULL scope columns read as an empty scope
        if code.scope is not None and not isinstance(code.scope, str):
            raise OAuthError.collaborator_contract("Server error: `scope` must be a string")

        self._check_code_verifier(request, code)
        return code

    def _check_expiry(self, code: AuthorizationCode) -> None:
        if not isinstance(code.expires_at, datetime):
            raise OAuthError.collaborator_contract("Server error: `expires_at` must be a datetime instance")

        if as_utc(code.expires_at) <= as_utc(self.clock()):
            raise OAuthError.invalid_grant("Invalid grant: authorization code has expired")

    def _check_code_verifier(self, request: GrantRequest, code: AuthorizationCode) -> None:
        verifier = request.code_verifier

        if not code.code_challenge:
            # A verifier with nothing to verify against is never accepted
            if verifier:
                raise OAuthError.invalid_grant("Invalid grant: code verifier is invalid")
            return

        if not verifier:
            raise OAuthError.invalid_grant("Missing parameter: `code_verifier`")

        if not isinstance(verifier, str) or not pkce.verify(code.code_challenge, code.code_challenge_method, verifier):
            raise OAuthError.invalid_grant("Invalid grant: code verifier is invalid")


class RedirectUriChecker:
    """Enforces RFC 6749 section 4.1.3 redirect URI consistency"""

    def check(self, request: GrantRequest, code: AuthorizationCode) -> None:
        if not code.redirect_uri:
            return

        redirect_uri = request.redirect_uri

        if not is_uri(redirect_uri):
            raise OAuthError.malformed_request("Invalid request: `redirect_uri` is not a valid URI")

        if redirect_uri != code.redirect_uri:
            raise OAuthError.malformed_request("Invalid request: `redirect_uri` is invalid")
