"""PKCE (RFC 7636) proof verification for the token endpoint"""

import base64
import hashlib
import hmac
from typing import Union

from errors import OAuthError
from models import PKCEMethod


def parse_method(method: Union[str, PKCEMethod, None]) -> PKCEMethod:
    """Map a stored code_challenge_method onto PKCEMethod"""
    # A conforming authorization endpoint only persists plain or S256
    try:
        return PKCEMethod(method)
    except ValueError:
        raise OAuthError.collaborator_contract(
            "Server error: `get_authorization_code()` did not return a valid `code_challenge_method` property"
        ) from None


def compute_challenge(method: Union[str, PKCEMethod], verifier: str) -> str:
    """Derive the code challenge a verifier answers for"""
    method = parse_method(method)
    if method is PKCEMethod.PLAIN:
        return verifier
    if method is PKCEMethod.S256:
        digest = hashlib.sha256(verifier.encode("utf-8")).digest()
        return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")
    raise OAuthError.collaborator_contract(f"Server error: unhandled code challenge method {method!r}")


def verify(challenge: str, method: Union[str, PKCEMethod], verifier: str) -> bool:
    """Check a code verifier against the stored challenge in constant time"""
    expected = compute_challenge(method, verifier)
    # compare_digest only accepts ASCII str, so compare the UTF-8 bytes
    return hmac.compare_digest(expected.encode("utf-8"), challenge.encode("utf-8"))
