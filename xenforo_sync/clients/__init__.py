from .cookies import Cookie, CookieStore, parse_set_cookie
from .http_client import HttpClient, RequestOptions
from .rate_limiter import RateLimiter
from .response import Response

__all__ = [
    "Cookie",
    "CookieStore",
    "HttpClient",
    "RateLimiter",
    "RequestOptions",
    "Response",
    "parse_set_cookie",
]
