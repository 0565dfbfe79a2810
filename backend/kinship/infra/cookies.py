"""Cookie helpers for the login session.

The access token is mirrored into an httpOnly cookie so browser clients can
open sockets and call the API without handling the token themselves.
"""

from __future__ import annotations

from fastapi import Response

from kinship.settings import settings


def set_auth_cookie(response: Response, token: str) -> None:
    max_age = int(settings.access_ttl_minutes) * 60
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=max_age,
        expires=max_age,
        path="/",
        secure=bool(settings.cookie_secure),
        httponly=True,
        samesite="lax",
        domain=settings.cookie_domain or None,
    )


def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.auth_cookie_name,
        path="/",
        domain=settings.cookie_domain or None,
    )
