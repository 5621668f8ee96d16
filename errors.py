from enum import Enum

from fastapi.responses import JSONResponse

from models import OAuthErrorResponse


class ErrorKind(str, Enum):
    """Every way a code exchange can fail"""
    CONFIGURATION = "configuration"
    MALFORMED_REQUEST = "malformed_request"
    INVALID_GRANT = "invalid_grant"
    INVALID_SCOPE = "invalid_scope"
    COLLABORATOR_CONTRACT = "collaborator_contract"


# (OAuth error code, HTTP status) per kind
_WIRE = {
    ErrorKind.CONFIGURATION: ("server_error", 500),
    ErrorKind.MALFORMED_REQUEST: ("invalid_request", 400),
    ErrorKind.INVALID_GRANT: ("invalid_grant", 400),
    ErrorKind.INVALID_SCOPE: ("invalid_scope", 400),
    ErrorKind.COLLABORATOR_CONTRACT: ("server_error", 503),
}

_SERVER_SIDE = {ErrorKind.CONFIGURATION, ErrorKind.COLLABORATOR_CONTRACT}


class OAuthError(Exception):
    """Error raised by the authorization code grant, tagged with an ErrorKind"""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"OAuthError({self.kind.value}, {self.message!r})"

    @classmethod
    def configuration(cls, message: str) -> "OAuthError":
        return cls(ErrorKind.CONFIGURATION, message)

    @classmethod
    def malformed_request(cls, message: str) -> "OAuthError":
        return cls(ErrorKind.MALFORMED_REQUEST, message)

    @classmethod
    def invalid_grant(cls, message: str) -> "OAuthError":
        return cls(ErrorKind.INVALID_GRANT, message)

    @classmethod
    def invalid_scope(cls, message: str) -> "OAuthError":
        return cls(ErrorKind.INVALID_SCOPE, message)

    @classmethod
    def collaborator_contract(cls, message: str) -> "OAuthError":
        return cls(ErrorKind.COLLABORATOR_CONTRACT, message)

    @property
    def error(self) -> str:
        """OAuth ``error`` code sent to the client"""
        return _WIRE[self.kind][0]

    @property
    def status_code(self) -> int:
        return _WIRE[self.kind][1]

    @property
    def is_server_error(self) -> bool:
        return self.kind in _SERVER_SIDE

    def to_response(self) -> JSONResponse:
        """Render as an RFC 6749 error response"""
        # Integration defects stay in the logs, not in the response
        description = "Internal server error" if self.is_server_error else self.message
        body = OAuthErrorResponse(error=self.error, error_description=description)
        return JSONResponse(
            status_code=self.status_code,
            content=body.model_dump(),
            headers={"Cache-Control": "no-store", "Pragma": "no-cache"},
        )
