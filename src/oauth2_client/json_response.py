from typing import Any

from pydantic import BaseModel
from starlette.responses import JSONResponse

from oauth2_client.errors import OAuth2Error

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store",
    "Pragma": "no-cache",
}


class PydanticJSONResponse(JSONResponse):
    def __init__(self, content: Any, status_code: int = 200):
        super().__init__(content, status_code=status_code, headers=NO_CACHE_HEADERS)

    def render(self, content: Any) -> bytes:
        if isinstance(content, BaseModel):
            return content.model_dump_json(exclude_none=True).encode("utf-8")
        return super().render(content)


def error_response(error: OAuth2Error) -> PydanticJSONResponse:
    return PydanticJSONResponse(error.error_response(), status_code=error.code)
