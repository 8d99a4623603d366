"""Credential broker: a local OAuth-shaped handshake for MCP callers.

There is no identity provider behind this. A single configured client
id/secret pair stands in for "the user", and the authorization-code dance
exists so MCP clients that only speak OAuth can connect:

    GET  /authorize  -> issue_authorization_code()
    POST /token      -> exchange()
    POST /call       -> authenticate() / validate()

Codes are single use and live 10 minutes; access tokens live 24 hours.
Expired entries are removed lazily on lookup and by a periodic sweep task.
"""

import asyncio
import contextlib
import hmac
import logging

from oauth.stores import ACCESS_TOKEN_TTL, AccessToken, AuthorizationCode, CredentialStore, new_token

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL = 5 * 60  # 5 minutes


class OAuthError(Exception):
    """Base for broker failures that map onto an OAuth error response.

    Attributes:
        error: OAuth error code returned to the client
        description: Human-readable detail (safe to return)
        status_code: HTTP status for the error response
    """

    def __init__(self, error: str, description: str = "", status_code: int = 400):
        self.error = error
        self.description = description
        self.status_code = status_code
        super().__init__(f"{error}: {description}" if description else error)

    def to_dict(self) -> dict:
        body = {"error": self.error}
        if self.description:
            body["error_description"] = self.description
        return body


class ClientAuthError(OAuthError):
    """Wrong client id or secret."""

    def __init__(self, description: str = "Unknown client or bad credentials"):
        super().__init__("invalid_client", description, status_code=401)


class GrantError(OAuthError):
    """Unusable grant: unknown/expired/mismatched code, or unsupported grant type."""

    def __init__(self, description: str = "", error: str = "invalid_grant"):
        super().__init__(error, description, status_code=400)


def _same(a: str | None, b: str | None) -> bool:
    if not (isinstance(a, str) and isinstance(b, str)):
        return False
    return hmac.compare_digest(a.encode(), b.encode())


class CredentialBroker:
    """Issues, validates and expires codes and tokens for one configured client."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        store: CredentialStore = None,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        bind_refresh_tokens: bool = False,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.store = store or CredentialStore()
        self.sweep_interval = sweep_interval
        self.bind_refresh_tokens = bind_refresh_tokens
        self._sweeper: asyncio.Task | None = None

    # ============== Authorization ==============

    def issue_authorization_code(self, client_id: str, redirect_uri: str) -> AuthorizationCode:
        if not _same(client_id, self.client_id):
            logger.info("[AUTH] Authorization refused: unknown client")
            raise ClientAuthError()

        entry = self.store.add_code(client_id, redirect_uri)
        logger.info(f"[AUTH] Authorization code issued for client {client_id}")
        return entry

    # ============== Token exchange ==============

    def exchange(
        self,
        client_id: str,
        client_secret: str,
        grant_type: str,
        code: str = None,
        refresh_token: str = None,
        redirect_uri: str = None,
    ) -> dict:
        """Trade a code (or refresh token) for a new access token.

        Returns the token response body. Raises ClientAuthError or GrantError.
        """
        if not (_same(client_id, self.client_id) and _same(client_secret, self.client_secret)):
            logger.info(f"[TOKEN] Rejected {grant_type} grant: bad client credentials")
            raise ClientAuthError()

        if grant_type == "authorization_code":
            entry = self.store.get_code(code) if isinstance(code, str) and code else None
            if entry is None or entry.client_id != client_id:
                logger.info("[TOKEN] Rejected authorization_code grant: unknown, expired or foreign code")
                raise GrantError("Authorization code is invalid or expired")
            if redirect_uri and redirect_uri != entry.redirect_uri:
                logger.info("[TOKEN] Rejected authorization_code grant: redirect_uri mismatch")
                raise GrantError("redirect_uri does not match the authorization request")
            # Single use: gone before the token exists
            self.store.consume_code(entry.code)

        elif grant_type == "refresh_token":
            if self.bind_refresh_tokens:
                entry = None
                if isinstance(refresh_token, str) and refresh_token:
                    entry = self.store.consume_refresh_token(refresh_token)
                if entry is None or entry.client_id != client_id:
                    logger.info("[TOKEN] Rejected refresh_token grant: unknown refresh token")
                    raise GrantError("Refresh token is invalid or expired")

        else:
            logger.info(f"[TOKEN] Rejected unsupported grant type: {grant_type}")
            raise GrantError(f"Unsupported grant type: {grant_type}", error="unsupported_grant_type")

        access = self.store.add_access_token(client_id)
        # Unbound refresh tokens are never looked up, so only bound ones are kept
        if self.bind_refresh_tokens:
            next_refresh = self.store.add_refresh_token(client_id).token
        else:
            next_refresh = new_token()
        logger.info(f"[TOKEN] Access token created for client {client_id} via {grant_type}")

        return {
            "access_token": access.token,
            "token_type": "Bearer",
            "expires_in": ACCESS_TOKEN_TTL,
            "refresh_token": next_refresh,
        }

    # ============== Validation ==============

    def authenticate(self, auth_header: str | None) -> AccessToken | None:
        """Return the live token named by a "Bearer <token>" header, or None."""
        if not auth_header:
            return None
        scheme, _, token = auth_header.partition(" ")
        token = token.strip()
        if scheme.lower() != "bearer" or not token:
            return None
        return self.store.get_access_token(token)

    def validate(self, auth_header: str | None) -> bool:
        return self.authenticate(auth_header) is not None

    # ============== Expiry ==============

    def sweep(self) -> dict[str, int]:
        removed = self.store.sweep()
        if any(removed.values()):
            logger.info(
                f"[SWEEP] Removed {removed['authorization_codes']} codes, "
                f"{removed['access_tokens']} access tokens, "
                f"{removed['refresh_tokens']} refresh tokens"
            )
        return removed

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            self.sweep()

    def start(self) -> None:
        """Start the periodic sweep (needs a running event loop)."""
        if self._sweeper is None:
            self._sweeper = asyncio.create_task(self._sweep_forever())
            logger.info(f"[SWEEP] Expiry sweep every {self.sweep_interval:g}s")

    async def stop(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweeper
        self._sweeper = None
