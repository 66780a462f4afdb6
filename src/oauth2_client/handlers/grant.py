"""
Handlers for the grant flow endpoints.

A GrantFlowHandler runs one GrantFlow per request and leaves the shape of the
HTTP answer to a ResponseEmitter, so the four grant endpoints differ only in
their strategy and emitter.
"""

import logging
from dataclasses import dataclass
from typing import Protocol

from starlette.requests import Request
from starlette.responses import Response

from oauth2_client.errors import OAuth2Error
from oauth2_client.flow import GrantFlow, GrantFlowState
from oauth2_client.grants.sender import GrantSender
from oauth2_client.grants.strategies import GrantStrategy
from oauth2_client.handlers.redirect import (
    FIELD_RETURN_URI,
    FIELD_TOKEN,
    get_remove_path,
    redirect_response,
    with_query,
)
from oauth2_client.json_response import PydanticJSONResponse, error_response
from oauth2_client.settings import is_path_only
from oauth2_client.shared.auth import IssuedAuthorization
from oauth2_client.shared.cookies import CookieTokenStore

logger = logging.getLogger(__name__)


class ResponseEmitter(Protocol):
    failure_state: GrantFlowState

    def success(self, request: Request, issued: IssuedAuthorization) -> Response:
        """Response for a persisted authorization; may raise OAuth2Error."""
        ...

    def failure(self, request: Request, error: OAuth2Error) -> Response: ...


class JSONEmitter:
    """Writes the issued authorization as JSON."""

    failure_state = GrantFlowState.EMITTING_ERROR

    def success(self, request: Request, issued: IssuedAuthorization) -> Response:
        return PydanticJSONResponse(issued)

    def failure(self, request: Request, error: OAuth2Error) -> Response:
        return error_response(error)


@dataclass(frozen=True)
class ReturnUriEmitter:
    """Sends the user agent to a fixed return URI after authorization."""

    return_uri: str
    failure_state = GrantFlowState.EMITTING_ERROR

    def success(self, request: Request, issued: IssuedAuthorization) -> Response:
        return redirect_response(self.return_uri)

    def failure(self, request: Request, error: OAuth2Error) -> Response:
        return error_response(error)


@dataclass(frozen=True)
class RefreshEmitter:
    """
    Redirects to the `return_uri` query parameter after a refresh, or writes
    JSON when there is none. A failed refresh goes to the invalidation
    endpoint so a stale refresh token gets removed from the user agent.
    """

    endpoint_name: str
    store: CookieTokenStore
    failure_state = GrantFlowState.REDIRECTING_TO_INVALIDATION

    def success(self, request: Request, issued: IssuedAuthorization) -> Response:
        return_uri = request.query_params.get(FIELD_RETURN_URI)
        if return_uri:
            return redirect_response(return_uri)
        return PydanticJSONResponse(issued)

    def failure(self, request: Request, error: OAuth2Error) -> Response:
        return_uri = request.query_params.get(FIELD_RETURN_URI)
        if return_uri and not is_path_only(return_uri):
            # removal would refuse it and keep the stale cookies
            return_uri = None
        remove_uri = with_query(
            get_remove_path(self.endpoint_name),
            {
                FIELD_TOKEN: self.store.get_access_token(request),
                FIELD_RETURN_URI: return_uri,
            },
        )
        return redirect_response(remove_uri)


@dataclass
class GrantFlowHandler:
    strategy: GrantStrategy
    sender: GrantSender
    store: CookieTokenStore
    emitter: ResponseEmitter

    async def handle(self, request: Request) -> Response:
        flow = GrantFlow(self.strategy, self.sender, self.store)
        logger.debug(f"Obtaining access token for {self.strategy.grant_type}...")

        try:
            issued = await flow.run(request)
        except OAuth2Error as e:
            logger.error(f"{self.strategy.grant_type} grant flow failed: {e!r}")
            flow.finish(self.emitter.failure_state)
            return self.emitter.failure(request, e)

        try:
            response = self.emitter.success(request, issued)
        except OAuth2Error as e:
            # tokens were issued but the response can not be built; drop them
            logger.error(f"Could not emit {self.strategy.grant_type} response: {e!r}")
            flow.finish(GrantFlowState.EMITTING_ERROR)
            return error_response(e)

        for cookie in flow.cookies:
            cookie.apply(response)
        flow.finish(GrantFlowState.EMITTING_RESPONSE)
        return response
