from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from oauth2_client.errors import (
    InvalidIssuedAuthorizationError,
    stringify_pydantic_error,
)


class IssuedAuthorization(BaseModel):
    """
    Successful token endpoint answer.
    See https://datatracker.ietf.org/doc/html/rfc6749#section-5.1
    """

    access_token: str
    token_type: str
    expires_in: Optional[int] = None
    refresh_token: Optional[str] = None
    scope: Optional[str] = None

    # provider-specific fields are kept and echoed back to JSON clients
    model_config = ConfigDict(extra="allow", frozen=True)

    @field_validator("token_type")
    @classmethod
    def only_bearer(cls, value: str) -> str:
        if value.lower() != "bearer":
            raise ValueError("Only Bearer token type is supported")
        return value


def validate_issued_authorization(content: Any) -> IssuedAuthorization:
    """
    Turns a parsed token endpoint body into an IssuedAuthorization.

    Raises:
        InvalidIssuedAuthorizationError: if the body is not a valid bearer
            token response; this always means a broken authorization server.
    """
    if not isinstance(content, dict):
        raise InvalidIssuedAuthorizationError(
            "Response from authorization server is not a JSON object"
        )
    try:
        return IssuedAuthorization.model_validate(content)
    except ValidationError as e:
        raise InvalidIssuedAuthorizationError(
            "Response from authorization server is invalid: "
            + stringify_pydantic_error(e)
        ) from e
