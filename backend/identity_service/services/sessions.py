"""
Session cookies.

Both tokens travel as HttpOnly, Secure cookies. The same option set is used
when setting and when clearing; browsers ignore a clear whose attributes do
not match the original cookie.
"""
from fastapi import Response

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"

COOKIE_OPTIONS = {
    "httponly": True,
    "secure": True,
    "samesite": "lax",
    "path": "/",
}


def attach(response: Response, access_token: str, refresh_token: str) -> None:
    response.set_cookie(ACCESS_COOKIE, access_token, **COOKIE_OPTIONS)
    response.set_cookie(REFRESH_COOKIE, refresh_token, **COOKIE_OPTIONS)


def clear(response: Response) -> None:
    response.delete_cookie(ACCESS_COOKIE, **COOKIE_OPTIONS)
    response.delete_cookie(REFRESH_COOKIE, **COOKIE_OPTIONS)
