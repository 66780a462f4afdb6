"""
Client for protected resource servers.

Requests are sent with the access token of the configured endpoint as a
bearer token. The outcome is returned as one of three results instead of
being raised, so callers can decide whether to redirect the user agent,
render the data or report the failure:

* ResourceData: the server answered with a status below 400.
* NeedsReauthorization: there is no access token, or the server answered
  401. `to_response()` redirects to the refresh endpoint.
* ResourceFailure: any other error status, wrapped in ResourceServerError.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

import httpx
from starlette.requests import HTTPConnection
from starlette.responses import RedirectResponse

from oauth2_client.errors import ReauthorizationRequiredError, ResourceServerError
from oauth2_client.handlers.redirect import (
    FIELD_RETURN_URI,
    FIELD_TOKEN,
    get_refresh_path,
    get_remove_path,
    redirect_response,
    with_query,
)
from oauth2_client.settings import ResourceServerConfig
from oauth2_client.shared.cookies import read_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourceData:
    content: Any
    status_code: int = 200

    def unwrap(self) -> Any:
        return self.content


@dataclass(frozen=True)
class NeedsReauthorization:
    location: str

    def unwrap(self) -> Any:
        raise ReauthorizationRequiredError(self.location)

    def to_response(self) -> RedirectResponse:
        return redirect_response(self.location)


@dataclass(frozen=True)
class ResourceFailure:
    error: ResourceServerError

    def unwrap(self) -> Any:
        raise self.error


ResourceResult = Union[ResourceData, NeedsReauthorization, ResourceFailure]


def get_return_uri(connection: HTTPConnection) -> str:
    url = connection.url
    return f"{url.path}?{url.query}" if url.query else url.path


def parse_resource_content(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class ResourceServerClient:
    """
    Sends bearer authenticated requests to one resource server.

    Args:
        config: Host of the resource server and the endpoint whose access
            token cookie it trusts.
        http_client: Client used for every call; when omitted a short-lived
            client is created per call.
    """

    def __init__(
        self,
        config: ResourceServerConfig,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.config = config
        self.http_client = http_client

    @property
    def endpoint_name(self) -> str:
        return self.config.endpoint.name

    def get_token(self, connection: HTTPConnection) -> str | None:
        return read_token(connection, self.config.endpoint.access_token_name)

    def is_authorized(self, connection: HTTPConnection) -> bool:
        return self.get_token(connection) is not None

    def refresh_authorization(self, connection: HTTPConnection) -> NeedsReauthorization:
        return NeedsReauthorization(
            with_query(
                get_refresh_path(self.endpoint_name),
                {FIELD_RETURN_URI: get_return_uri(connection)},
            )
        )

    def remove_authorization(
        self, connection: HTTPConnection, return_uri: str | None = None
    ) -> RedirectResponse:
        """Redirect to the invalidation endpoint, passing the CSRF token along."""
        location = with_query(
            get_remove_path(self.endpoint_name),
            {
                FIELD_TOKEN: self.get_token(connection),
                FIELD_RETURN_URI: return_uri or get_return_uri(connection),
            },
        )
        return redirect_response(location)

    async def request(
        self,
        request: HTTPConnection,
        path: str = "",
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
        data: Mapping[str, Any] | None = None,
        json: Any = None,
    ) -> ResourceResult:
        token = self.get_token(request)
        if token is None:
            logger.debug(f"No access token for {self.endpoint_name}, reauthorizing")
            return self.refresh_authorization(request)

        url = self.config.host + path
        request_headers = httpx.Headers(headers)
        request_headers["Authorization"] = f"Bearer {token}"
        kwargs: dict[str, Any] = {
            "headers": request_headers,
            "params": params,
            "data": data,
            "json": json,
        }

        started = time.perf_counter()
        try:
            if self.http_client is not None:
                response = await self.http_client.request(method, url, **kwargs)
            else:
                async with httpx.AsyncClient(
                    verify=not self.config.unsafe_https
                ) as client:
                    response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Error requesting {method} {url}: {e!r}")
            return ResourceFailure(
                ResourceServerError(f"Can not reach resource server: {e}", code=502)
            )
        logger.debug(
            f"{method} {url} answered {response.status_code} "
            f"in {(time.perf_counter() - started) * 1000:.0f}ms"
        )

        content = parse_resource_content(response)
        if 200 <= response.status_code < 400:
            return ResourceData(content, response.status_code)

        if response.status_code == 401:
            return self.refresh_authorization(request)

        logger.error(f"{method} {url} failed with {response.status_code}")
        details = content if isinstance(content, dict) else None
        message = (details or {}).get("error") or response.reason_phrase
        return ResourceFailure(
            ResourceServerError(str(message), code=response.status_code, details=details)
        )
