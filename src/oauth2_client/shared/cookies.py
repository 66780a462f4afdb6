"""
Token persistence in client-side cookies.

Cookies are parsed by Starlette (`Request.cookies`) and serialised with
`Response.set_cookie`. A value written during a request is also recorded as
an *effective token* in the request state, so that anything running later in
the same request reads the new value instead of the stale Cookie header.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from starlette.requests import HTTPConnection
from starlette.responses import Response

from oauth2_client.settings import CookieConfig
from oauth2_client.shared.auth import IssuedAuthorization

logger = logging.getLogger(__name__)

EFFECTIVE_TOKENS_STATE_KEY = "oauth2_effective_tokens"
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def get_effective_tokens(connection: HTTPConnection) -> dict[str, str]:
    tokens = getattr(connection.state, EFFECTIVE_TOKENS_STATE_KEY, None)
    if tokens is None:
        tokens = {}
        setattr(connection.state, EFFECTIVE_TOKENS_STATE_KEY, tokens)
    return tokens


def read_token(connection: HTTPConnection, name: str) -> str | None:
    """
    Current value of a token cookie, preferring a value written earlier in
    this request. Empty values count as absent.
    """
    tokens = get_effective_tokens(connection)
    if name in tokens:
        value = tokens[name]
    else:
        value = connection.cookies.get(name)
    return value or None


@dataclass(frozen=True)
class TokenCookie:
    """
    One pending Set-Cookie write.
    See http://tools.ietf.org/html/rfc6265#section-4.1.1
    """

    key: str
    value: str
    max_age: int
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = False

    def apply(self, response: Response) -> None:
        # expires defaults to now + max-age, except for removal
        expires: int | datetime = self.max_age if self.max_age > 0 else EPOCH
        response.set_cookie(
            self.key,
            self.value,
            max_age=self.max_age,
            expires=expires,
            path=self.path,
            domain=self.domain,
            secure=self.secure,
            httponly=self.httponly,
        )


class CookieTokenStore:
    """Reads and writes the access/refresh token cookies of one endpoint."""

    def __init__(self, config: CookieConfig):
        self.config = config

    def get_access_token(self, connection: HTTPConnection) -> str | None:
        return read_token(connection, self.config.access_token_name)

    def get_refresh_token(self, connection: HTTPConnection) -> str | None:
        return read_token(connection, self.config.refresh_token_name)

    def write(self, connection: HTTPConnection, cookie: TokenCookie) -> TokenCookie:
        get_effective_tokens(connection)[cookie.key] = cookie.value
        return cookie

    def persist(
        self, connection: HTTPConnection, issued: IssuedAuthorization
    ) -> list[TokenCookie]:
        """
        Produce the cookie writes for a freshly issued authorization.

        The access cookie lives for the server supplied `expires_in` when there
        is one, otherwise for the configured default.
        """
        max_age = (
            issued.expires_in
            if issued.expires_in is not None
            else self.config.access_token_expires_in
        )
        cookies = [
            self.write(
                connection,
                self._cookie(self.config.access_token_name, issued.access_token, max_age),
            )
        ]
        if issued.refresh_token is not None:
            cookies.append(
                self.write(
                    connection,
                    self._cookie(
                        self.config.refresh_token_name,
                        issued.refresh_token,
                        self.config.refresh_token_expires_in,
                        httponly=True,
                    ),
                )
            )
        logger.debug(f"Persisting {len(cookies)} token cookie(s)")
        return cookies

    def clear(self, connection: HTTPConnection) -> list[TokenCookie]:
        # http://tools.ietf.org/html/rfc6265#section-3.1
        return [
            self.write(connection, self._cookie(name, "", 0))
            for name in (self.config.access_token_name, self.config.refresh_token_name)
        ]

    def _cookie(
        self, name: str, value: str, max_age: int, httponly: bool = False
    ) -> TokenCookie:
        return TokenCookie(
            key=name,
            value=value,
            max_age=max_age,
            path=self.config.path,
            domain=self.config.domain,
            secure=bool(self.config.secure),
            httponly=httponly,
        )
