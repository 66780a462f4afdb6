import logging
import secrets
from dataclasses import dataclass

from starlette.requests import Request
from starlette.responses import Response

from oauth2_client.errors import ForbiddenError, OAuth2Error
from oauth2_client.grants.strategies import check_method
from oauth2_client.handlers.redirect import (
    FIELD_RETURN_URI,
    FIELD_TOKEN,
    check_redirect_location,
    redirect_response,
)
from oauth2_client.json_response import error_response
from oauth2_client.shared.cookies import CookieTokenStore

logger = logging.getLogger(__name__)


@dataclass
class InvalidationHandler:
    """
    Removes the token cookies of one endpoint.

    When the user agent still holds an access token, the `token` query
    parameter must repeat it; a third party page can not read the cookie and
    so can not log the user out.
    """

    store: CookieTokenStore

    async def handle(self, request: Request) -> Response:
        try:
            check_method(request, "GET")
            self.check_token(request)
            return_uri = request.query_params.get(FIELD_RETURN_URI)
            if return_uri:
                # refuse before anything is cleared
                check_redirect_location(return_uri)
        except OAuth2Error as e:
            logger.error(f"Authorization removal refused: {e!r}")
            return error_response(e)

        response = redirect_response(return_uri) if return_uri else Response()
        for cookie in self.store.clear(request):
            cookie.apply(response)
        logger.debug("Token cookies removed")
        return response

    def check_token(self, request: Request) -> None:
        access_token = self.store.get_access_token(request)
        if access_token is None:
            return
        token = request.query_params.get(FIELD_TOKEN, "")
        if not secrets.compare_digest(token.encode(), access_token.encode()):
            raise ForbiddenError("Token does not match the access token cookie")
