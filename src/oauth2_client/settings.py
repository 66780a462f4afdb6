import json
from pathlib import Path
from typing import Literal
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

GrantType = Literal["authorization_code", "client_credentials", "password"]

DEFAULT_ACCESS_TOKEN_EXPIRATION = 3600
DEFAULT_REFRESH_TOKEN_EXPIRATION = 3_110_400_000  # about 100 years
DEFAULT_MAX_BODY_SIZE = 512


def is_path_only(uri: str) -> bool:
    parts = urlsplit(uri)
    # browsers read "///host" and "/\host" as network-path references
    return (
        not parts.scheme
        and not parts.netloc
        and not uri.startswith(("//", "/\\", "\\"))
    )


def check_no_colon(value: str) -> str:
    # http://tools.ietf.org/html/rfc6749#section-2.3.1
    if ":" in value:
        raise ValueError("must not contain colon (':') character")
    return value


class CookieConfig(BaseModel):
    """Token cookie configuration of one endpoint."""

    model_config = ConfigDict(frozen=True)

    access_token_name: str = Field(..., min_length=1)
    refresh_token_name: str = Field(..., min_length=1)
    access_token_expires_in: int = Field(
        DEFAULT_ACCESS_TOKEN_EXPIRATION,
        ge=0,
        description="Access cookie lifetime when the server sends no expires_in",
    )
    refresh_token_expires_in: int = Field(DEFAULT_REFRESH_TOKEN_EXPIRATION, ge=0)
    path: str = "/"
    domain: str | None = None
    secure: bool | None = None


class GrantSenderConfig(BaseModel):
    """Credentials and transport parameters of one OAuth 2.0 client registration."""

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(..., min_length=1)
    client_secret: str = Field(..., min_length=1)
    auth_server_url: str = Field(..., min_length=1)
    token_endpoint_path: str = "/token"
    timeout: float = Field(30000, gt=0, description="Grant send timeout in milliseconds")
    unsafe_https: bool = Field(
        False, description="Send grants even if the server certificate is invalid"
    )

    @field_validator("client_id", "client_secret")
    @classmethod
    def no_colon(cls, value: str) -> str:
        return check_no_colon(value)

    @property
    def token_endpoint_url(self) -> str:
        return self.auth_server_url + self.token_endpoint_path


class EndpointConfig(BaseModel):
    """Configuration of one named grant endpoint."""

    model_config = ConfigDict(frozen=True)

    grant_type: GrantType
    scope: str | None = None
    redirect_uri: str | None = Field(
        None, description="Redirect URI used for obtaining the authorization code"
    )
    return_uri: str | None = Field(
        None, description="Where the user agent goes after authorization"
    )
    max_body_size: int = Field(DEFAULT_MAX_BODY_SIZE, gt=0)
    middleware: bool = Field(
        False,
        description="Acquire a client credentials token for every request in middleware",
    )
    cookie: CookieConfig

    @model_validator(mode="after")
    def check_endpoint(self) -> "EndpointConfig":
        if self.grant_type == "authorization_code":
            if not self.redirect_uri:
                raise ValueError('"redirect_uri" not found in config')
            if not self.return_uri:
                raise ValueError('"return_uri" not found in config')
        if self.middleware and self.grant_type != "client_credentials":
            raise ValueError('"middleware" is only supported for client_credentials')
        if self.return_uri and not is_path_only(self.return_uri):
            raise ValueError('"return_uri" must be a URL path, not an absolute URL')
        return self


class ResourceServerEndpoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    access_token_name: str = Field(..., min_length=1)


class ResourceServerConfig(BaseModel):
    """A protected API and the endpoint whose access token it trusts."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(..., min_length=1)
    endpoint: ResourceServerEndpoint
    unsafe_https: bool = False


class AuthorizationSettings(BaseSettings):
    """
    Authorization section of the application configuration.

    Values come from OAUTH2_* environment variables (nested sections as JSON)
    or from keyword arguments, see load_settings().
    """

    model_config = SettingsConfigDict(env_prefix="OAUTH2_")

    client_id: str
    client_secret: str
    auth_server_url: str
    token_endpoint_path: str = "/token"
    timeout: float = 30000
    unsafe_https: bool = False

    endpoints: dict[str, EndpointConfig] = Field(default_factory=dict)
    resource_servers: dict[str, ResourceServerConfig] = Field(default_factory=dict)

    @field_validator("client_id", "client_secret")
    @classmethod
    def no_colon(cls, value: str) -> str:
        return check_no_colon(value)

    def grant_sender_config(self) -> GrantSenderConfig:
        return GrantSenderConfig(
            client_id=self.client_id,
            client_secret=self.client_secret,
            auth_server_url=self.auth_server_url,
            token_endpoint_path=self.token_endpoint_path,
            timeout=self.timeout,
            unsafe_https=self.unsafe_https,
        )


def load_settings(config_path: Path | None = None) -> AuthorizationSettings:
    """
    Load settings from a JSON file (an object with the authorization section)
    or, when no path is given, from the environment only.
    """
    if config_path is None:
        return AuthorizationSettings()  # type: ignore[call-arg]
    data = json.loads(config_path.read_text(encoding="utf-8"))
    # init kwargs take precedence over environment variables
    return AuthorizationSettings(**data.get("authorization", data))
