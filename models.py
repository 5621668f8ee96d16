from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class PKCEMethod(str, Enum):
    """Code challenge methods a conforming authorization endpoint persists"""
    PLAIN = "plain"
    S256 = "S256"


# Grant Models
class Client(BaseModel):
    """OAuth client as seen by the token endpoint"""
    # Only id takes part in code binding; extra attributes ride along
    model_config = ConfigDict(extra="allow", frozen=True)

    id: str


@dataclass
class AuthorizationCode:
    """Authorization code record as returned by the storage model"""
    # Unvalidated on purpose: CodeValidator re-checks every field it relies on
    authorization_code: str
    client: Any
    user: Any
    expires_at: Any
    redirect_uri: Optional[str] = None
    scope: Optional[str] = ""
    code_challenge: Optional[str] = None
    code_challenge_method: Optional[str] = None


class GrantRequest(BaseModel):
    """Token request parameters already parsed by the host"""
    body: Dict[str, Any] = Field(default_factory=dict)
    query: Dict[str, Any] = Field(default_factory=dict)

    @property
    def code(self) -> Optional[str]:
        return self.body.get("code")

    @property
    def code_verifier(self) -> Optional[str]:
        return self.body.get("code_verifier")

    @property
    def redirect_uri(self) -> Optional[str]:
        # Body wins; the query string is only a fallback
        return self.body.get("redirect_uri") or self.query.get("redirect_uri")


class Token(BaseModel):
    """Token issued for one successful code exchange"""
    access_token: str
    access_token_expires_at: datetime
    refresh_token: Optional[str] = None
    refresh_token_expires_at: Optional[datetime] = None
    scope: str = ""
    authorization_code: str
    client: Any = None
    user: Any = None

    def to_response(self, now: datetime) -> Dict[str, Any]:
        """Render the RFC 6749 section 5.1 bearer token response body"""
        body = {
            "access_token": self.access_token,
            "token_type": "Bearer",
            "expires_in": max(0, int((self.access_token_expires_at - now).total_seconds())),
            "scope": self.scope,
        }
        if self.refresh_token:
            body["refresh_token"] = self.refresh_token
        return body


# Error Models
class OAuthErrorResponse(BaseModel):
    """RFC 6749 section 5.2 error response body"""
    error: str
    error_description: Optional[str] = None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes from storage as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
