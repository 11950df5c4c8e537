"""
Unit tests for services.sessions module.
Tests that session cookies are set and cleared with identical attributes.
"""
from fastapi import Response
from identity_service.services import sessions


def set_cookie_headers(response: Response) -> list[str]:
    return [v.decode("latin-1") for k, v in response.raw_headers if k == b"set-cookie"]


def attributes(header: str) -> set[str]:
    """Cookie attributes other than the value and expiry bookkeeping."""
    parts = [p.strip().lower() for p in header.split(";")[1:]]
    return {p for p in parts if not p.startswith(("expires=", "max-age="))}


class TestSessionCookies:

    def test_attach_sets_both_cookies(self):
        response = Response()
        sessions.attach(response, "access-abc", "refresh-xyz")

        headers = set_cookie_headers(response)
        assert len(headers) == 2
        assert headers[0].startswith("accessToken=access-abc")
        assert headers[1].startswith("refreshToken=refresh-xyz")
        for header in headers:
            lowered = header.lower()
            assert "httponly" in lowered
            assert "secure" in lowered

    def test_clear_expires_both_cookies(self):
        response = Response()
        sessions.clear(response)

        headers = set_cookie_headers(response)
        assert len(headers) == 2
        assert headers[0].startswith("accessToken=")
        assert headers[1].startswith("refreshToken=")
        for header in headers:
            assert "max-age=0" in header.lower()

    def test_clear_uses_same_attributes_as_attach(self):
        set_response = Response()
        sessions.attach(set_response, "a", "r")
        clear_response = Response()
        sessions.clear(clear_response)

        for set_header, clear_header in zip(set_cookie_headers(set_response), set_cookie_headers(clear_response)):
            assert attributes(set_header) == attributes(clear_header)

    def test_cookie_names_are_stable(self):
        assert sessions.ACCESS_COOKIE == "accessToken"
        assert sessions.REFRESH_COOKIE == "refreshToken"
