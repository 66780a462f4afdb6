from .errors import ConfigurationError, OAuth2Error
from .flow import GrantFlow, GrantFlowState
from .resource_server import (
    NeedsReauthorization,
    ResourceData,
    ResourceFailure,
    ResourceServerClient,
)
from .router import OAuth2FlowFactory
from .server import create_app
from .settings import AuthorizationSettings, load_settings
from .shared.auth import IssuedAuthorization
from .shared.cookies import CookieTokenStore

__all__ = [
    "AuthorizationSettings",
    "ConfigurationError",
    "CookieTokenStore",
    "GrantFlow",
    "GrantFlowState",
    "IssuedAuthorization",
    "NeedsReauthorization",
    "OAuth2Error",
    "OAuth2FlowFactory",
    "ResourceData",
    "ResourceFailure",
    "ResourceServerClient",
    "create_app",
    "load_settings",
]
