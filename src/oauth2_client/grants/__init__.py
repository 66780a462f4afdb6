from oauth2_client.grants.sender import GrantSender
from oauth2_client.grants.strategies import (
    AuthorizationCodeGrant,
    ClientCredentialsGrant,
    GrantStrategy,
    PasswordCredentialsGrant,
    RefreshTokenGrant,
)

__all__ = [
    "AuthorizationCodeGrant",
    "ClientCredentialsGrant",
    "GrantSender",
    "GrantStrategy",
    "PasswordCredentialsGrant",
    "RefreshTokenGrant",
]
