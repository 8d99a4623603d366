"""
Unit tests for the credential broker and its store.

Time is moved with the FakeClock from conftest.py; nothing here sleeps
except the sweep-task test, which runs the real asyncio loop briefly.
"""

import asyncio

import pytest

from conftest import CLIENT_ID, CLIENT_SECRET, REDIRECT_URI
from oauth.broker import ClientAuthError, CredentialBroker, GrantError
from oauth.stores import ACCESS_TOKEN_TTL, AUTHORIZATION_CODE_TTL, REFRESH_TOKEN_TTL


def exchange_code(broker, code, client_id=CLIENT_ID, client_secret=CLIENT_SECRET, **kwargs):
    return broker.exchange(client_id, client_secret, "authorization_code", code=code, **kwargs)


# ---------------------------------------------------------------------------
# Authorization codes
# ---------------------------------------------------------------------------
class TestAuthorizationCode:

    def test_issue_for_unknown_client_is_refused(self, broker):
        with pytest.raises(ClientAuthError):
            broker.issue_authorization_code("someone-else", REDIRECT_URI)
        assert broker.store.authorization_codes == {}

    def test_exchange_returns_bearer_token(self, broker):
        entry = broker.issue_authorization_code(CLIENT_ID, REDIRECT_URI)
        body = exchange_code(broker, entry.code)

        assert body["token_type"] == "Bearer"
        assert body["expires_in"] == ACCESS_TOKEN_TTL
        assert body["access_token"] in broker.store.access_tokens
        assert body["refresh_token"]
        # Unbound refresh tokens are never looked up, so nothing is kept for them
        assert broker.store.refresh_tokens == {}

    def test_code_is_single_use(self, broker):
        entry = broker.issue_authorization_code(CLIENT_ID, REDIRECT_URI)
        exchange_code(broker, entry.code)

        with pytest.raises(GrantError) as exc_info:
            exchange_code(broker, entry.code)
        assert exc_info.value.error == "invalid_grant"

    def test_code_is_consumed_before_the_token_exists(self, broker):
        entry = broker.issue_authorization_code(CLIENT_ID, REDIRECT_URI)
        exchange_code(broker, entry.code)
        assert entry.code not in broker.store.authorization_codes

    def test_expired_code_is_rejected_as_absent(self, broker, clock):
        entry = broker.issue_authorization_code(CLIENT_ID, REDIRECT_URI)
        clock.advance(AUTHORIZATION_CODE_TTL + 1)

        with pytest.raises(GrantError):
            exchange_code(broker, entry.code)
        assert entry.code not in broker.store.authorization_codes

    def test_code_at_exactly_ttl_still_works(self, broker, clock):
        entry = broker.issue_authorization_code(CLIENT_ID, REDIRECT_URI)
        clock.advance(AUTHORIZATION_CODE_TTL)
        assert exchange_code(broker, entry.code)["access_token"]

    def test_unknown_code_is_rejected(self, broker):
        with pytest.raises(GrantError):
            exchange_code(broker, "never-issued")

    def test_missing_code_is_rejected(self, broker):
        with pytest.raises(GrantError):
            exchange_code(broker, None)

    def test_code_from_another_client_is_rejected(self, broker, store):
        # A second client sharing the same store holds valid credentials of
        # its own, but the code was issued to the first client.
        other = CredentialBroker("other-client", "other-secret", store=store)
        entry = broker.issue_authorization_code(CLIENT_ID, REDIRECT_URI)

        with pytest.raises(GrantError) as exc_info:
            exchange_code(other, entry.code, client_id="other-client", client_secret="other-secret")
        assert exc_info.value.error == "invalid_grant"

        # The rightful owner can still use it
        assert exchange_code(broker, entry.code)["access_token"]

    def test_redirect_uri_must_match_when_given(self, broker):
        entry = broker.issue_authorization_code(CLIENT_ID, REDIRECT_URI)
        with pytest.raises(GrantError):
            exchange_code(broker, entry.code, redirect_uri="https://evil.example/cb")

    def test_matching_redirect_uri_is_accepted(self, broker):
        entry = broker.issue_authorization_code(CLIENT_ID, REDIRECT_URI)
        assert exchange_code(broker, entry.code, redirect_uri=REDIRECT_URI)["access_token"]


# ---------------------------------------------------------------------------
# Client credentials and grant types
# ---------------------------------------------------------------------------
class TestExchange:

    @pytest.mark.parametrize("client_id,client_secret", [
        (CLIENT_ID, "wrong-secret"),
        ("wrong-client", CLIENT_SECRET),
        (None, None),
        (CLIENT_ID, None),
    ])
    def test_bad_credentials(self, broker, client_id, client_secret):
        entry = broker.issue_authorization_code(CLIENT_ID, REDIRECT_URI)
        with pytest.raises(ClientAuthError) as exc_info:
            exchange_code(broker, entry.code, client_id=client_id, client_secret=client_secret)
        assert exc_info.value.status_code == 401
        # Credentials are checked first: the code survives
        assert entry.code in broker.store.authorization_codes

    def test_unsupported_grant_type(self, broker):
        with pytest.raises(GrantError) as exc_info:
            broker.exchange(CLIENT_ID, CLIENT_SECRET, "password")
        assert exc_info.value.error == "unsupported_grant_type"
        assert exc_info.value.status_code == 400

    def test_refresh_grant_is_lax_by_default(self, broker):
        body = broker.exchange(CLIENT_ID, CLIENT_SECRET, "refresh_token", refresh_token="anything")
        assert broker.validate(f"Bearer {body['access_token']}")

    def test_bound_refresh_tokens_must_have_been_issued(self, store):
        broker = CredentialBroker(CLIENT_ID, CLIENT_SECRET, store=store, bind_refresh_tokens=True)
        with pytest.raises(GrantError):
            broker.exchange(CLIENT_ID, CLIENT_SECRET, "refresh_token", refresh_token="anything")

    def test_bound_refresh_token_rotates(self, store):
        broker = CredentialBroker(CLIENT_ID, CLIENT_SECRET, store=store, bind_refresh_tokens=True)
        entry = broker.issue_authorization_code(CLIENT_ID, REDIRECT_URI)
        first = exchange_code(broker, entry.code)

        second = broker.exchange(CLIENT_ID, CLIENT_SECRET, "refresh_token", refresh_token=first["refresh_token"])
        assert second["refresh_token"] != first["refresh_token"]

        with pytest.raises(GrantError):
            broker.exchange(CLIENT_ID, CLIENT_SECRET, "refresh_token", refresh_token=first["refresh_token"])

    def test_bound_broker_keeps_issued_refresh_tokens(self, store):
        broker = CredentialBroker(CLIENT_ID, CLIENT_SECRET, store=store, bind_refresh_tokens=True)
        entry = broker.issue_authorization_code(CLIENT_ID, REDIRECT_URI)

        body = exchange_code(broker, entry.code)

        assert body["refresh_token"] in store.refresh_tokens

    def test_lax_refresh_stores_nothing(self, broker):
        for _ in range(3):
            broker.exchange(CLIENT_ID, CLIENT_SECRET, "refresh_token", refresh_token="anything")
        assert broker.store.refresh_tokens == {}

    @pytest.mark.parametrize("client_id,client_secret", [
        (123, CLIENT_SECRET),
        (CLIENT_ID, ["not", "a", "string"]),
        ({"id": CLIENT_ID}, {"secret": CLIENT_SECRET}),
    ])
    def test_non_string_credentials_are_refused(self, broker, client_id, client_secret):
        with pytest.raises(ClientAuthError):
            broker.exchange(client_id, client_secret, "refresh_token", refresh_token="anything")

    def test_non_string_code_is_rejected(self, broker):
        with pytest.raises(GrantError):
            exchange_code(broker, ["a"])

    def test_expired_bound_refresh_token(self, store, clock):
        broker = CredentialBroker(CLIENT_ID, CLIENT_SECRET, store=store, bind_refresh_tokens=True)
        entry = broker.issue_authorization_code(CLIENT_ID, REDIRECT_URI)
        body = exchange_code(broker, entry.code)
        clock.advance(REFRESH_TOKEN_TTL + 1)

        with pytest.raises(GrantError):
            broker.exchange(CLIENT_ID, CLIENT_SECRET, "refresh_token", refresh_token=body["refresh_token"])

    def test_error_body(self):
        assert GrantError("Authorization code is invalid or expired").to_dict() == {
            "error": "invalid_grant",
            "error_description": "Authorization code is invalid or expired",
        }


# ---------------------------------------------------------------------------
# Access token validation
# ---------------------------------------------------------------------------
class TestValidation:

    def test_valid_token(self, broker, auth_header):
        assert broker.validate(auth_header)
        assert broker.authenticate(auth_header).client_id == CLIENT_ID

    def test_scheme_is_case_insensitive(self, broker, issue_token):
        token = issue_token()["access_token"]
        assert broker.validate(f"bearer {token}")

    @pytest.mark.parametrize("header", [None, "", "Bearer", "Bearer ", "Basic abc", "Token abc", "Bearer unknown"])
    def test_rejected_headers(self, broker, header):
        assert not broker.validate(header)

    def test_expired_token_is_removed(self, broker, clock, issue_token):
        token = issue_token()["access_token"]
        clock.advance(ACCESS_TOKEN_TTL + 1)

        assert not broker.validate(f"Bearer {token}")
        assert token not in broker.store.access_tokens
        assert not broker.validate(f"Bearer {token}")

    def test_token_still_valid_just_before_expiry(self, broker, clock, issue_token):
        token = issue_token()["access_token"]
        clock.advance(ACCESS_TOKEN_TTL - 1)
        assert broker.validate(f"Bearer {token}")


# ---------------------------------------------------------------------------
# Sweep
# ---------------------------------------------------------------------------
class TestSweep:

    def test_sweep_removes_only_expired_entries(self, broker, clock):
        old_code = broker.issue_authorization_code(CLIENT_ID, REDIRECT_URI)
        old_token = broker.store.add_access_token(CLIENT_ID)

        clock.advance(AUTHORIZATION_CODE_TTL + 1)
        fresh_code = broker.issue_authorization_code(CLIENT_ID, REDIRECT_URI)

        removed = broker.sweep()
        assert removed == {"authorization_codes": 1, "access_tokens": 0, "refresh_tokens": 0}
        assert old_code.code not in broker.store.authorization_codes
        assert fresh_code.code in broker.store.authorization_codes
        assert old_token.token in broker.store.access_tokens

        clock.advance(ACCESS_TOKEN_TTL)
        fresh_token = broker.store.add_access_token(CLIENT_ID)

        removed = broker.sweep()
        assert removed["access_tokens"] == 1
        assert old_token.token not in broker.store.access_tokens
        assert fresh_token.token in broker.store.access_tokens

    def test_sweep_on_empty_store(self, broker):
        assert broker.sweep() == {"authorization_codes": 0, "access_tokens": 0, "refresh_tokens": 0}

    async def test_sweep_task_runs_periodically(self, store, clock):
        broker = CredentialBroker(CLIENT_ID, CLIENT_SECRET, store=store, sweep_interval=0.01)
        broker.issue_authorization_code(CLIENT_ID, REDIRECT_URI)
        clock.advance(AUTHORIZATION_CODE_TTL + 1)

        broker.start()
        try:
            await asyncio.sleep(0.05)
            assert store.authorization_codes == {}
        finally:
            await broker.stop()

    async def test_stop_is_idempotent(self, broker):
        broker.start()
        await broker.stop()
        await broker.stop()
        assert broker._sweeper is None
