from .client_credentials import ClientCredentialsMiddleware

__all__ = ["ClientCredentialsMiddleware"]
