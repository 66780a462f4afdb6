import logging

import httpx
from starlette.middleware import Middleware
from starlette.routing import Route

from oauth2_client.errors import ConfigurationError
from oauth2_client.grants.sender import GrantSender, SpecificHeaders
from oauth2_client.grants.strategies import (
    AuthorizationCodeGrant,
    ClientCredentialsGrant,
    PasswordCredentialsGrant,
    RefreshTokenGrant,
)
from oauth2_client.handlers.grant import (
    GrantFlowHandler,
    JSONEmitter,
    RefreshEmitter,
    ReturnUriEmitter,
)
from oauth2_client.handlers.invalidate import InvalidationHandler
from oauth2_client.handlers.redirect import get_path, get_refresh_path, get_remove_path
from oauth2_client.middleware.client_credentials import ClientCredentialsMiddleware
from oauth2_client.resource_server import ResourceServerClient
from oauth2_client.settings import AuthorizationSettings, EndpointConfig
from oauth2_client.shared.cookies import CookieTokenStore

logger = logging.getLogger(__name__)

# handlers answer unsupported methods themselves with a JSON 405
ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


class OAuth2FlowFactory:
    """
    Builds grant flows, middleware and resource server clients from
    AuthorizationSettings.

    Args:
        settings: Client registration, endpoints and resource servers.
        http_client: Optional client shared by every grant sender and
            resource server client.
        extra_headers: Optional hook adding application specific headers to
            every grant request.
    """

    def __init__(
        self,
        settings: AuthorizationSettings,
        http_client: httpx.AsyncClient | None = None,
        extra_headers: SpecificHeaders | None = None,
    ):
        self.settings = settings
        self.http_client = http_client
        self.sender = GrantSender(
            settings.grant_sender_config(),
            http_client=http_client,
            extra_headers=extra_headers,
        )

    def get_endpoint(self, name: str, grant_type: str | None = None) -> EndpointConfig:
        endpoint = self.settings.endpoints.get(name)
        if endpoint is None:
            raise ConfigurationError(f'Authorization endpoint "{name}" not found')
        if grant_type is not None and endpoint.grant_type != grant_type:
            raise ConfigurationError(
                f'Authorization endpoint "{name}" uses {endpoint.grant_type} grant'
            )
        return endpoint

    def create_store(self, name: str) -> CookieTokenStore:
        return CookieTokenStore(self.get_endpoint(name).cookie)

    def create_authorization_code_flow(self, name: str) -> GrantFlowHandler:
        endpoint = self.get_endpoint(name, "authorization_code")
        assert endpoint.redirect_uri is not None and endpoint.return_uri is not None
        return GrantFlowHandler(
            strategy=AuthorizationCodeGrant(redirect_uri=endpoint.redirect_uri),
            sender=self.sender,
            store=CookieTokenStore(endpoint.cookie),
            emitter=ReturnUriEmitter(endpoint.return_uri),
        )

    def create_client_credentials_flow(self, name: str) -> GrantFlowHandler:
        endpoint = self.get_endpoint(name, "client_credentials")
        return GrantFlowHandler(
            strategy=ClientCredentialsGrant(scope=endpoint.scope),
            sender=self.sender,
            store=CookieTokenStore(endpoint.cookie),
            emitter=JSONEmitter(),
        )

    def create_client_credentials_middleware(self, name: str) -> Middleware:
        endpoint = self.get_endpoint(name, "client_credentials")
        return Middleware(
            ClientCredentialsMiddleware,
            sender=self.sender,
            store=CookieTokenStore(endpoint.cookie),
            scope=endpoint.scope,
            endpoint_name=name,
        )

    def create_password_credentials_flow(self, name: str) -> GrantFlowHandler:
        endpoint = self.get_endpoint(name, "password")
        return GrantFlowHandler(
            strategy=PasswordCredentialsGrant(
                scope=endpoint.scope, max_body_size=endpoint.max_body_size
            ),
            sender=self.sender,
            store=CookieTokenStore(endpoint.cookie),
            emitter=JSONEmitter(),
        )

    def create_refresh_token_flow(self, name: str) -> GrantFlowHandler:
        endpoint = self.get_endpoint(name)
        store = CookieTokenStore(endpoint.cookie)
        return GrantFlowHandler(
            strategy=RefreshTokenGrant(store=store, scope=endpoint.scope),
            sender=self.sender,
            store=store,
            emitter=RefreshEmitter(name, store),
        )

    def create_invalidation_flow(self, name: str) -> InvalidationHandler:
        return InvalidationHandler(self.create_store(name))

    def create_resource_server(self, name: str) -> ResourceServerClient:
        config = self.settings.resource_servers.get(name)
        if config is None:
            raise ConfigurationError(f'Resource server "{name}" not found')
        return ResourceServerClient(config, http_client=self.http_client)

    def create_grant_flow(self, name: str) -> GrantFlowHandler:
        grant_type = self.get_endpoint(name).grant_type
        if grant_type == "authorization_code":
            return self.create_authorization_code_flow(name)
        if grant_type == "client_credentials":
            return self.create_client_credentials_flow(name)
        return self.create_password_credentials_flow(name)

    def create_routes(self) -> list[Route]:
        """
        Create the grant, refresh and removal routes of every endpoint:
        /{name}, /{name}/refresh and /{name}/remove.
        """
        if not self.settings.endpoints:
            raise ConfigurationError("Authorization endpoints not found")

        routes: list[Route] = []
        for name in self.settings.endpoints:
            routes += [
                Route(
                    get_path(name),
                    endpoint=self.create_grant_flow(name).handle,
                    methods=ALL_METHODS,
                ),
                Route(
                    get_refresh_path(name),
                    endpoint=self.create_refresh_token_flow(name).handle,
                    methods=ALL_METHODS,
                ),
                Route(
                    get_remove_path(name),
                    endpoint=self.create_invalidation_flow(name).handle,
                    methods=ALL_METHODS,
                ),
            ]
            logger.debug(f"Registered authorization endpoint {get_path(name)}")
        return routes

    def create_middleware(self) -> list[Middleware]:
        return [
            self.create_client_credentials_middleware(name)
            for name, endpoint in self.settings.endpoints.items()
            if endpoint.middleware
        ]
