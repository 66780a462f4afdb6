import json

import pytest
from pydantic import ValidationError

from oauth2_client.settings import (
    CookieConfig,
    EndpointConfig,
    GrantSenderConfig,
    is_path_only,
    load_settings,
)

COOKIE = {"access_token_name": "at", "refresh_token_name": "rt"}


@pytest.mark.parametrize(
    "uri, expected",
    [
        ("/home", True),
        ("home?x=1", True),
        ("/a/b#top", True),
        ("http://evil.test/", False),
        ("//evil.test/x", False),
        ("///evil.test", False),
        ("/\\evil.test", False),
        ("javascript:alert(1)", False),
    ],
)
def test_is_path_only(uri, expected):
    assert is_path_only(uri) is expected


def test_cookie_config_defaults():
    config = CookieConfig(**COOKIE)
    assert config.access_token_expires_in == 3600
    assert config.refresh_token_expires_in == 3110400000
    assert config.path == "/"
    assert config.domain is None


@pytest.mark.parametrize("missing", ["access_token_name", "refresh_token_name"])
def test_cookie_names_required(missing):
    with pytest.raises(ValidationError):
        CookieConfig(**{**COOKIE, missing: ""})


@pytest.mark.parametrize("field", ["client_id", "client_secret"])
def test_credentials_must_not_contain_colon(field):
    values = {"client_id": "client", "client_secret": "secret", "auth_server_url": "http://a"}
    values[field] = "with:colon"
    with pytest.raises(ValidationError, match="colon"):
        GrantSenderConfig(**values)


def test_token_endpoint_url():
    config = GrantSenderConfig(
        client_id="c", client_secret="s", auth_server_url="https://auth.test"
    )
    assert config.token_endpoint_url == "https://auth.test/token"
    assert config.timeout == 30000
    assert config.unsafe_https is False


@pytest.mark.parametrize("missing", ["redirect_uri", "return_uri"])
def test_authorization_code_requires_uris(missing):
    values = {
        "grant_type": "authorization_code",
        "redirect_uri": "https://app.test/cb",
        "return_uri": "/",
        "cookie": COOKIE,
    }
    del values[missing]
    with pytest.raises(ValidationError, match=missing):
        EndpointConfig(**values)


def test_return_uri_must_be_path():
    with pytest.raises(ValidationError, match="URL path"):
        EndpointConfig(
            grant_type="password", return_uri="https://evil.test/", cookie=COOKIE
        )


def test_middleware_only_for_client_credentials():
    with pytest.raises(ValidationError, match="middleware"):
        EndpointConfig(grant_type="password", middleware=True, cookie=COOKIE)
    assert EndpointConfig(
        grant_type="client_credentials", middleware=True, cookie=COOKIE
    ).middleware


def test_load_settings_reads_authorization_section(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "authorization": {
                    "client_id": "client",
                    "client_secret": "secret",
                    "auth_server_url": "https://auth.test",
                    "timeout": 500,
                    "endpoints": {
                        "svc": {"grant_type": "client_credentials", "cookie": COOKIE}
                    },
                }
            }
        )
    )
    settings = load_settings(path)
    assert settings.endpoints["svc"].cookie.access_token_name == "at"
    assert settings.grant_sender_config().timeout == 500


def test_load_settings_from_environment(monkeypatch):
    monkeypatch.setenv("OAUTH2_CLIENT_ID", "env-client")
    monkeypatch.setenv("OAUTH2_CLIENT_SECRET", "env-secret")
    monkeypatch.setenv("OAUTH2_AUTH_SERVER_URL", "https://auth.test")
    monkeypatch.setenv(
        "OAUTH2_ENDPOINTS",
        json.dumps({"svc": {"grant_type": "client_credentials", "cookie": COOKIE}}),
    )
    settings = load_settings()
    assert settings.client_id == "env-client"
    assert list(settings.endpoints) == ["svc"]
