import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from oauth2_client.errors import OAuth2Error
from oauth2_client.flow import GrantFlow, GrantFlowState
from oauth2_client.grants.sender import GrantSender
from oauth2_client.grants.strategies import ClientCredentialsGrant
from oauth2_client.handlers.redirect import get_path, get_refresh_path, get_remove_path
from oauth2_client.shared.cookies import CookieTokenStore

logger = logging.getLogger(__name__)


class ClientCredentialsMiddleware(BaseHTTPMiddleware):
    """
    Middleware that makes sure every request carries a client credentials
    access token.

    When the access token cookie is missing, a client credentials grant is
    sent before the request reaches the application. The new token is visible
    to the rest of the request through the store and is set as a cookie on the
    response. Failures are logged and the request proceeds without a token.
    The grant, refresh and removal routes of `endpoint_name` are left alone.
    """

    def __init__(
        self,
        app: ASGIApp,
        sender: GrantSender,
        store: CookieTokenStore,
        scope: str | None = None,
        endpoint_name: str | None = None,
    ):
        super().__init__(app)
        self.sender = sender
        self.store = store
        # the endpoint routes run their own grant or removal
        self.excluded_paths = (
            frozenset(
                {
                    get_path(endpoint_name),
                    get_refresh_path(endpoint_name),
                    get_remove_path(endpoint_name),
                }
            )
            if endpoint_name is not None
            else frozenset()
        )
        self.strategy = ClientCredentialsGrant(scope=scope, method=None)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if (
            request.url.path in self.excluded_paths
            or self.store.get_access_token(request) is not None
        ):
            return await call_next(request)

        flow = GrantFlow(self.strategy, self.sender, self.store)
        try:
            await flow.run(request)
        except OAuth2Error as e:
            logger.warning(f"Client credentials grant failed, continuing: {e!r}")
            flow.finish(GrantFlowState.EMITTING_ERROR)
            return await call_next(request)

        response = await call_next(request)
        for cookie in flow.cookies:
            cookie.apply(response)
        flow.finish(GrantFlowState.EMITTING_RESPONSE)
        return response
