"""
Custom authentication backend for legacy token auth.

JWT bearer tokens (``Authorization: Bearer <jwt>``) are handled by
simplejwt.  This subclass of Django REST framework's
``TokenAuthentication`` keeps the opaque ``Token <key>`` scheme working
for clients that store the legacy token returned at login.  Keeping it
separate from any view definitions avoids circular imports when the
REST framework imports authentication classes during initialization.
"""
from __future__ import annotations

from rest_framework import authentication


class TokenAuthentication(authentication.TokenAuthentication):
    """Token authentication using the ``Token`` keyword."""

    keyword = 'Token'
