"""
Grant strategies.

Each strategy knows how to pull its input out of an inbound request and how
to turn that input into the token request fields of its grant type.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol
from urllib.parse import parse_qsl

from starlette.requests import Request

from oauth2_client.errors import (
    InvalidRequestError,
    MethodNotAllowedError,
    PayloadTooLargeError,
    UnsupportedContentTypeError,
)
from oauth2_client.shared.cookies import CookieTokenStore

GrantInput = dict[str, str]

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class GrantStrategy(Protocol):
    grant_type: str

    async def extract_input(self, request: Request) -> GrantInput:
        """Read and check the flow specific input of the inbound request."""
        ...

    def build_grant_fields(self, grant_input: GrantInput) -> dict[str, str]:
        """Token request body for the grant, including grant_type."""
        ...


def check_method(request: Request, method: str) -> None:
    if request.method.upper() != method.upper():
        raise MethodNotAllowedError(method)


def check_content_type(request: Request, content_type: str) -> None:
    header = request.headers.get("content-type", "")
    if header.split(";")[0].strip().lower() != content_type:
        raise UnsupportedContentTypeError(content_type)


async def read_limited_body(request: Request, limit: int) -> bytes:
    """Read the request body, failing as soon as it grows beyond `limit` bytes."""
    body = b""
    async for chunk in request.stream():
        if len(body) + len(chunk) > limit:
            raise PayloadTooLargeError(limit)
        body += chunk
    return body


def with_scope(fields: dict[str, str], scope: str | None) -> dict[str, str]:
    if scope:
        fields["scope"] = scope
    return fields


@dataclass(frozen=True)
class AuthorizationCodeGrant:
    # http://tools.ietf.org/html/rfc6749#section-4.1.3
    redirect_uri: str
    grant_type: str = "authorization_code"

    async def extract_input(self, request: Request) -> GrantInput:
        check_method(request, "GET")
        code = request.query_params.get("code")
        if not code:
            raise InvalidRequestError('"code" is required parameter')
        return {"code": code}

    def build_grant_fields(self, grant_input: GrantInput) -> dict[str, str]:
        return {
            "grant_type": self.grant_type,
            "code": grant_input["code"],
            "redirect_uri": self.redirect_uri,
        }


@dataclass(frozen=True)
class ClientCredentialsGrant:
    # http://tools.ietf.org/html/rfc6749#section-4.4.2
    scope: str | None = None
    method: str | None = "GET"
    grant_type: str = "client_credentials"

    async def extract_input(self, request: Request) -> GrantInput:
        if self.method is not None:
            check_method(request, self.method)
        return {}

    def build_grant_fields(self, grant_input: GrantInput) -> dict[str, str]:
        return with_scope({"grant_type": self.grant_type}, self.scope)


@dataclass(frozen=True)
class PasswordCredentialsGrant:
    # http://tools.ietf.org/html/rfc6749#section-4.3.2
    scope: str | None = None
    max_body_size: int = 512
    grant_type: str = "password"

    async def extract_input(self, request: Request) -> GrantInput:
        check_method(request, "POST")
        check_content_type(request, FORM_CONTENT_TYPE)

        body = await read_limited_body(request, self.max_body_size)
        parsed = dict(parse_qsl(body.decode("utf-8", "replace"), keep_blank_values=True))

        for field in ("username", "password"):
            if field not in parsed:
                raise InvalidRequestError(f'"{field}" is required parameter')

        grant_input = {"username": parsed["username"], "password": parsed["password"]}
        scope = parsed.get("scope") or self.scope
        if scope:
            grant_input["scope"] = scope
        return grant_input

    def build_grant_fields(self, grant_input: GrantInput) -> dict[str, str]:
        return with_scope(
            {
                "grant_type": self.grant_type,
                "username": grant_input["username"],
                "password": grant_input["password"],
            },
            grant_input.get("scope"),
        )


@dataclass(frozen=True)
class RefreshTokenGrant:
    # http://tools.ietf.org/html/rfc6749#section-6
    store: CookieTokenStore
    scope: str | None = None
    grant_type: str = "refresh_token"

    async def extract_input(self, request: Request) -> GrantInput:
        check_method(request, "GET")
        refresh_token = self.store.get_refresh_token(request)
        if refresh_token is None:
            raise InvalidRequestError("Refresh token must be specified")
        return {"refresh_token": refresh_token}

    def build_grant_fields(self, grant_input: GrantInput) -> dict[str, str]:
        return with_scope(
            {"grant_type": self.grant_type, "refresh_token": grant_input["refresh_token"]},
            self.scope,
        )
