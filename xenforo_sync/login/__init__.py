from .adapters import (
    DEFAULT_ADAPTER,
    LOGIN_ADAPTERS,
    HomepageSeededLoginAdapter,
    StandardLoginAdapter,
    get_login_adapter,
)
from .base import LoginAdapter, LoginSession, extract_csrf_token, is_logged_in

__all__ = [
    "DEFAULT_ADAPTER",
    "LOGIN_ADAPTERS",
    "HomepageSeededLoginAdapter",
    "LoginAdapter",
    "LoginSession",
    "StandardLoginAdapter",
    "extract_csrf_token",
    "get_login_adapter",
    "is_logged_in",
]
