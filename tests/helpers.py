from typing import Any

import httpx
from starlette.requests import Request

from oauth2_client.settings import AuthorizationSettings

AUTH_SERVER_URL = "http://auth.test"
RESOURCE_SERVER_URL = "http://api.test"

ISSUED = {
    "access_token": "AT1",
    "token_type": "Bearer",
    "expires_in": 3600,
    "refresh_token": "RT1",
}


def make_settings(**endpoints: dict[str, Any]) -> AuthorizationSettings:
    return AuthorizationSettings(
        client_id="client",
        client_secret="secret",
        auth_server_url=AUTH_SERVER_URL,
        endpoints=endpoints,
        resource_servers={
            "api": {
                "host": RESOURCE_SERVER_URL + "/api",
                "endpoint": {"name": "login", "access_token_name": "at"},
            }
        },
    )


def set_cookies(response: httpx.Response) -> dict[str, str]:
    """Set-Cookie header values of a response keyed by cookie name."""
    return {
        header.split("=", 1)[0]: header
        for header in response.headers.get_list("set-cookie")
    }


def make_request(
    cookie: str = "", path: str = "/", query: str = "", method: str = "GET"
) -> Request:
    headers = [(b"cookie", cookie.encode())] if cookie else []
    return Request(
        {
            "type": "http",
            "method": method,
            "path": path,
            "query_string": query.encode(),
            "headers": headers,
        }
    )
