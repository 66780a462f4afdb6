from typing import Any
from urllib.parse import parse_qsl

import httpx
import pytest
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from oauth2_client.server import create_app
from tests.helpers import ISSUED, make_settings


class FakeUpstream:
    """
    In-process authorization and resource server. Answers are configured per
    test and every request is recorded.
    """

    def __init__(self):
        self.token_status = 200
        self.token_body: Any = dict(ISSUED)
        self.token_requests: list[dict[str, Any]] = []

        self.resource_status = 200
        self.resource_body: Any = {"items": [1, 2]}
        self.resource_requests: list[dict[str, Any]] = []

        self.app = Starlette(
            routes=[
                Route("/token", self.token, methods=["POST"]),
                Route(
                    "/api/{path:path}",
                    self.resource,
                    methods=["GET", "POST", "PUT", "DELETE"],
                ),
            ]
        )

    @staticmethod
    def answer(status: int, body: Any) -> Response:
        if isinstance(body, bytes | str):
            return Response(body, status_code=status, media_type="text/plain")
        return JSONResponse(body, status_code=status)

    async def token(self, request: Request) -> Response:
        body = (await request.body()).decode()
        self.token_requests.append(
            {"headers": dict(request.headers), "form": dict(parse_qsl(body))}
        )
        return self.answer(self.token_status, self.token_body)

    async def resource(self, request: Request) -> Response:
        self.resource_requests.append(
            {
                "method": request.method,
                "path": request.url.path,
                "query": dict(request.query_params),
                "headers": dict(request.headers),
                "body": (await request.body()).decode(),
            }
        )
        return self.answer(self.resource_status, self.resource_body)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
async def upstream_client(upstream):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=upstream.app)) as client:
        yield client


@pytest.fixture
def settings():
    return make_settings(
        login={
            "grant_type": "authorization_code",
            "redirect_uri": "https://app.test/login",
            "return_uri": "/home",
            "cookie": {"access_token_name": "at", "refresh_token_name": "rt"},
        },
        service={
            "grant_type": "client_credentials",
            "scope": "read",
            "cookie": {"access_token_name": "cc_at", "refresh_token_name": "cc_rt"},
        },
        password={
            "grant_type": "password",
            "cookie": {"access_token_name": "pw_at", "refresh_token_name": "pw_rt"},
        },
    )


@pytest.fixture
async def app_client(settings, upstream_client):
    app = create_app(settings, http_client=upstream_client)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://app.test") as client:
        yield client
