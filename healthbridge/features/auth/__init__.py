"""
Auth module.

Components:
- IdentityClient: bearer token -> AuthenticatedUser via the identity provider
"""

from .identity import AuthenticatedUser, IdentityClient, bearer_token

__all__ = ["AuthenticatedUser", "IdentityClient", "bearer_token"]
