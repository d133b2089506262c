from vidstream.client.api import ApiClient, ApiError, parse_auth_redirect
from vidstream.client.repositories import (
    AuthRepository,
    AuthResult,
    FeedRepository,
    SearchRepository,
)

__all__ = [
    "ApiClient",
    "ApiError",
    "parse_auth_redirect",
    "AuthRepository",
    "AuthResult",
    "FeedRepository",
    "SearchRepository",
]
