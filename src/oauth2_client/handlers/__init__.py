from .grant import (
    GrantFlowHandler,
    JSONEmitter,
    RefreshEmitter,
    ResponseEmitter,
    ReturnUriEmitter,
)
from .invalidate import InvalidationHandler

__all__ = [
    "GrantFlowHandler",
    "InvalidationHandler",
    "JSONEmitter",
    "RefreshEmitter",
    "ResponseEmitter",
    "ReturnUriEmitter",
]
