import httpx
import pytest
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from oauth2_client.router import OAuth2FlowFactory
from oauth2_client.server import create_app
from tests.helpers import make_settings, set_cookies

pytestmark = pytest.mark.anyio


@pytest.fixture
def settings():
    return make_settings(
        background={
            "grant_type": "client_credentials",
            "middleware": True,
            "cookie": {"access_token_name": "bg_at", "refresh_token_name": "bg_rt"},
        }
    )


@pytest.fixture
async def middleware_client(settings, upstream_client):
    factory = OAuth2FlowFactory(settings, http_client=upstream_client)
    store = factory.create_store("background")

    async def whoami(request: Request) -> JSONResponse:
        return JSONResponse({"token": store.get_access_token(request)})

    app = create_app(settings, http_client=upstream_client)
    app.router.routes.append(Route("/whoami", whoami))
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://app.test") as client:
        yield client


async def test_acquires_token_before_the_application(middleware_client, upstream):
    response = await middleware_client.get("/whoami")

    assert response.status_code == 200
    assert response.json() == {"token": "AT1"}
    assert set_cookies(response)["bg_at"].startswith("bg_at=AT1;")
    assert upstream.token_requests[0]["form"] == {"grant_type": "client_credentials"}


async def test_existing_cookie_skips_the_grant(middleware_client, upstream):
    response = await middleware_client.get("/whoami", headers={"Cookie": "bg_at=CACHED"})

    assert response.json() == {"token": "CACHED"}
    assert set_cookies(response) == {}
    assert upstream.token_requests == []


async def test_failure_passes_through(middleware_client, upstream):
    upstream.token_status = 401
    upstream.token_body = {"error": "invalid_client"}

    response = await middleware_client.get("/whoami")

    assert response.status_code == 200
    assert response.json() == {"token": None}
    assert set_cookies(response) == {}


async def test_applies_to_any_method(middleware_client, upstream):
    response = await middleware_client.post("/whoami")

    # routing rejects the method, the middleware still stored a token
    assert response.status_code == 405
    assert "bg_at" in set_cookies(response)


async def test_endpoint_route_sends_a_single_grant(middleware_client, upstream):
    response = await middleware_client.get("/background")

    assert response.status_code == 200
    assert len(upstream.token_requests) == 1
    access_cookies = [
        header
        for header in response.headers.get_list("set-cookie")
        if header.startswith("bg_at=")
    ]
    assert len(access_cookies) == 1
    assert access_cookies[0].startswith("bg_at=AT1;")


async def test_removal_without_cookie_is_not_blocked(middleware_client, upstream):
    for _ in range(2):
        response = await middleware_client.get("/background/remove")

        assert response.status_code == 200
        cookies = set_cookies(response)
        assert set(cookies) == {"bg_at", "bg_rt"}
        assert all("Max-Age=0" in header for header in cookies.values())
    assert upstream.token_requests == []


async def test_refresh_route_left_to_its_handler(middleware_client, upstream):
    response = await middleware_client.get("/background/refresh")

    assert response.status_code == 302
    assert response.headers["location"] == "/background/remove"
    assert upstream.token_requests == []
