"""
Authentication application.

Stores the identity behind every workspace member. Sign-in itself is handled
by an external identity provider that issues JWTs accepted by the API.

Usage:
    from authentication.models import User
"""
