"""Authentication services."""

from household_ledger.services.auth.service import (
    AuthError,
    AuthServiceInterface,
    InMemoryAuthService,
    SessionListener,
    SupabaseAuthService,
)

__all__ = [
    "AuthError",
    "AuthServiceInterface",
    "InMemoryAuthService",
    "SessionListener",
    "SupabaseAuthService",
]
