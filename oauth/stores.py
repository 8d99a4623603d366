"""In-memory stores for OAuth codes and tokens.

All three collections live on one CredentialStore instance owned by the
CredentialBroker. Nothing here survives a restart. The clock is injectable
so expiry can be tested without sleeping.

Access is synchronous and never awaits, which keeps insert/delete/sweep from
interleaving under the single-threaded event loop.
"""

import secrets
import time
from dataclasses import dataclass
from typing import Callable

AUTHORIZATION_CODE_TTL = 10 * 60  # 10 minutes
ACCESS_TOKEN_TTL = 24 * 60 * 60  # 24 hours
REFRESH_TOKEN_TTL = 30 * 24 * 60 * 60  # 30 days


def new_token() -> str:
    return secrets.token_urlsafe(32)


@dataclass(frozen=True)
class AuthorizationCode:
    code: str
    client_id: str
    redirect_uri: str
    created_at: float

    def is_expired(self, now: float) -> bool:
        return now - self.created_at > AUTHORIZATION_CODE_TTL


@dataclass(frozen=True)
class AccessToken:
    token: str
    client_id: str
    created_at: float

    def is_expired(self, now: float) -> bool:
        return now - self.created_at > ACCESS_TOKEN_TTL


@dataclass(frozen=True)
class RefreshToken:
    token: str
    client_id: str
    created_at: float

    def is_expired(self, now: float) -> bool:
        return now - self.created_at > REFRESH_TOKEN_TTL


class CredentialStore:
    """Codes and tokens keyed by their opaque value."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self.authorization_codes: dict[str, AuthorizationCode] = {}
        self.access_tokens: dict[str, AccessToken] = {}
        self.refresh_tokens: dict[str, RefreshToken] = {}

    # ----- authorization codes -----

    def add_code(self, client_id: str, redirect_uri: str) -> AuthorizationCode:
        entry = AuthorizationCode(new_token(), client_id, redirect_uri, self.clock())
        self.authorization_codes[entry.code] = entry
        return entry

    def get_code(self, code: str) -> AuthorizationCode | None:
        """Look up a live code; an expired one is removed and reported absent."""
        entry = self.authorization_codes.get(code)
        if entry is None:
            return None
        if entry.is_expired(self.clock()):
            del self.authorization_codes[code]
            return None
        return entry

    def consume_code(self, code: str) -> AuthorizationCode | None:
        return self.authorization_codes.pop(code, None)

    # ----- access tokens -----

    def add_access_token(self, client_id: str) -> AccessToken:
        entry = AccessToken(new_token(), client_id, self.clock())
        self.access_tokens[entry.token] = entry
        return entry

    def get_access_token(self, token: str) -> AccessToken | None:
        """Look up a live token; an expired one is removed and reported absent."""
        entry = self.access_tokens.get(token)
        if entry is None:
            return None
        if entry.is_expired(self.clock()):
            del self.access_tokens[token]
            return None
        return entry

    # ----- refresh tokens -----

    def add_refresh_token(self, client_id: str) -> RefreshToken:
        entry = RefreshToken(new_token(), client_id, self.clock())
        self.refresh_tokens[entry.token] = entry
        return entry

    def consume_refresh_token(self, token: str) -> RefreshToken | None:
        """Remove and return a live refresh token (None if unknown or expired)."""
        entry = self.refresh_tokens.pop(token, None)
        if entry is None or entry.is_expired(self.clock()):
            return None
        return entry

    # ----- expiry -----

    def sweep(self) -> dict[str, int]:
        """Drop every expired entry and report how many went from each collection."""
        now = self.clock()
        removed = {}
        for name, collection in (
            ("authorization_codes", self.authorization_codes),
            ("access_tokens", self.access_tokens),
            ("refresh_tokens", self.refresh_tokens),
        ):
            expired = [key for key, entry in collection.items() if entry.is_expired(now)]
            for key in expired:
                del collection[key]
            removed[name] = len(expired)
        return removed
