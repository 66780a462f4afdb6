from typing import Any, Literal

from pydantic import BaseModel, ValidationError

ErrorCode = Literal["invalid_request", "invalid_client"]


class ErrorResponse(BaseModel):
    """
    See https://datatracker.ietf.org/doc/html/rfc6749#section-5.2
    """

    error: ErrorCode
    error_description: str


class ConfigurationError(ValueError):
    """Raised at construction time when configuration is missing or malformed."""


class OAuth2Error(Exception):
    """
    Base class for all errors produced while handling a request.

    `code` is the HTTP status used for the error response and `details` is an
    optional JSON object forwarded verbatim instead of the generated body.
    """

    code: int = 400

    def __init__(
        self,
        message: str,
        code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details

    def error_response(self) -> dict[str, Any] | ErrorResponse:
        if isinstance(self.details, dict):
            return self.details
        return ErrorResponse(
            error="invalid_request" if 400 <= self.code < 500 else "invalid_client",
            error_description=self.message,
        )


class InvalidRequestError(OAuth2Error):
    code = 400


class ForbiddenError(OAuth2Error):
    code = 403


class MethodNotAllowedError(OAuth2Error):
    code = 405

    def __init__(self, method: str):
        super().__init__(f'Only "{method.upper()}" method is allowed')


class UnsupportedContentTypeError(OAuth2Error):
    code = 406

    def __init__(self, content_type: str):
        super().__init__(f'Content type must be "{content_type}"')


class PayloadTooLargeError(OAuth2Error):
    code = 413

    def __init__(self, limit: int):
        super().__init__(f"Request body is too long, it is limited by {limit} bytes")


class TokenEndpointError(OAuth2Error):
    """Non-200 answer (or no answer at all) from the token endpoint."""


class InvalidIssuedAuthorizationError(OAuth2Error):
    """The authorization server returned a body that violates RFC 6749 §5.1."""

    code = 500


class RedirectError(OAuth2Error):
    code = 400


class ResourceServerError(OAuth2Error):
    """Bad status from a protected resource server."""


class ReauthorizationRequiredError(OAuth2Error):
    """The resource server needs a fresh access token; follow `location`."""

    code = 401

    def __init__(self, location: str):
        super().__init__(f"Authorization required, redirect to {location}")
        self.location = location


class GrantFlowTransitionError(Exception):
    """Raised when an invalid grant flow state transition is attempted."""


def stringify_pydantic_error(validation_error: ValidationError) -> str:
    return "\n".join(
        f"{'.'.join(str(loc) for loc in e['loc'])}: {e['msg']}"
        for e in validation_error.errors()
    )
