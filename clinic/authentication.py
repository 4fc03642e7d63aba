"""
Custom authentication backend for token-based auth.

Kept separate from any view definitions so that REST framework can import
authentication classes during initialisation without circular imports.
"""
from __future__ import annotations

from rest_framework import authentication


class TokenAuthentication(authentication.TokenAuthentication):
    """Token authentication using the ``Token`` keyword.

    DRF's default class also uses ``Token``; this subclass gives the
    settings a stable import path and room for later customisation.
    """

    keyword = 'Token'
