"""
Token endpoint client.

Sends grants to the authorization server and classifies the answer as
described in https://datatracker.ietf.org/doc/html/rfc6749#section-5
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Callable, Mapping
from typing import Any

import httpx
from starlette.requests import HTTPConnection

from oauth2_client.errors import TokenEndpointError
from oauth2_client.settings import GrantSenderConfig

logger = logging.getLogger(__name__)

FIELD_GRANT_TYPE = "grant_type"

SpecificHeaders = Callable[[HTTPConnection], Mapping[str, str]]


def get_basic_credentials(client_id: str, client_secret: str) -> str:
    return base64.b64encode(f"{client_id}:{client_secret}".encode()).decode()


class GrantSender:
    """
    Posts grant requests to the token endpoint of one client registration.

    Args:
        config: Client credentials and transport settings.
        http_client: Client used for every call; when omitted a short-lived
            client is created per call with the configured timeout and TLS
            verification.
        extra_headers: Optional hook returning application specific headers
            for the inbound request that triggered the grant.
    """

    def __init__(
        self,
        config: GrantSenderConfig,
        http_client: httpx.AsyncClient | None = None,
        extra_headers: SpecificHeaders | None = None,
    ):
        self.config = config
        self.http_client = http_client
        self.extra_headers = extra_headers
        self._credentials = get_basic_credentials(
            config.client_id, config.client_secret
        )

    @property
    def timeout(self) -> float:
        return self.config.timeout / 1000

    def prepare_headers(self, request: HTTPConnection | None = None) -> dict[str, str]:
        headers = {
            # http://tools.ietf.org/html/rfc6749#section-2.3.1
            "Authorization": f"Basic {self._credentials}",
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }
        if self.extra_headers is not None and request is not None:
            headers.update(self.extra_headers(request))
        return headers

    async def send(
        self, data: Mapping[str, str], request: HTTPConnection | None = None
    ) -> Any:
        """
        Send a grant and return the parsed body of a 200 answer.

        Raises:
            TokenEndpointError: on any other status (with `code` and `details`
                taken from the answer) or when the server cannot be reached.
        """
        if not data or FIELD_GRANT_TYPE not in data:
            raise TokenEndpointError("Grant data must be specified")

        url = self.config.token_endpoint_url
        headers = self.prepare_headers(request)
        logger.debug(f"Sending {data[FIELD_GRANT_TYPE]} grant to {url}")

        try:
            if self.http_client is not None:
                response = await self.http_client.post(
                    url, data=dict(data), headers=headers, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(
                    verify=not self.config.unsafe_https, timeout=self.timeout
                ) as client:
                    response = await client.post(url, data=dict(data), headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Error sending grant to {url}: {e!r}")
            raise TokenEndpointError(f"Can not reach authorization server: {e}") from e

        content = parse_content(response)

        # http://tools.ietf.org/html/rfc6749#section-5.1
        if response.status_code == 200:
            return content

        # http://tools.ietf.org/html/rfc6749#section-5.2
        details = content if isinstance(content, dict) else None
        message = (details or {}).get("error") or response.reason_phrase
        logger.error(
            f"Token endpoint answered {response.status_code}: {response.text}"
        )
        raise TokenEndpointError(
            str(message), code=response.status_code, details=details
        )


def parse_content(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None
