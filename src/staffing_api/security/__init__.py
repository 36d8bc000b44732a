"""Security utilities."""

from staffing_api.security.auth import create_access_token, decode_token, get_current_user

__all__ = [
    "create_access_token",
    "decode_token",
    "get_current_user",
]
