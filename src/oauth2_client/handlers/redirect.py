from urllib.parse import urlencode

from starlette.responses import RedirectResponse

from oauth2_client.errors import RedirectError
from oauth2_client.settings import is_path_only

FIELD_TOKEN = "token"
FIELD_RETURN_URI = "return_uri"


def get_path(endpoint_name: str) -> str:
    return f"/{endpoint_name}"


def get_refresh_path(endpoint_name: str) -> str:
    return f"/{endpoint_name}/refresh"


def get_remove_path(endpoint_name: str) -> str:
    return f"/{endpoint_name}/remove"


def with_query(path: str, params: dict[str, str | None]) -> str:
    query = urlencode({k: v for k, v in params.items() if v})
    return f"{path}?{query}" if query else path


def check_redirect_location(location: str) -> str:
    """
    Normalise a redirect target, refusing anything but a URL path so the
    endpoints can not be used as an open redirector.
    """
    if not is_path_only(location):
        raise RedirectError(f'Can not redirect to location "{location}"')
    if not location.startswith("/"):
        location = f"/{location}"
    return location


def redirect_response(location: str) -> RedirectResponse:
    return RedirectResponse(url=check_redirect_location(location), status_code=302)
