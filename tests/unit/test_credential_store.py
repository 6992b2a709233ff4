"""Unit tests for the in-memory CredentialStore."""

import threading

import pytest

from spotify_mcp.auth.models import TokenSource, TokenStatus
from spotify_mcp.auth.token_storage import CredentialStore


@pytest.mark.unit
class TestCredentialStoreInit:
    """Tests for seeding the store from configuration."""

    def test_should_start_empty(self) -> None:
        """Verify a store without tokens holds nothing."""
        store = CredentialStore()

        assert store.get() is None
        assert store.source is None
        assert store.get_status() is TokenStatus.MISSING
        assert store.is_usable() is False

    def test_should_seed_from_environment_tokens(self) -> None:
        """Verify pre-provisioned tokens are stored with environment source."""
        store = CredentialStore(access_token="access", refresh_token="refresh")

        token = store.get()
        assert token is not None
        assert token.access_token == "access"
        assert token.refresh_token == "refresh"
        assert token.expires_at is None
        assert store.source is TokenSource.ENVIRONMENT

    def test_should_be_usable_with_refresh_token_only(self) -> None:
        """Verify a refresh token alone is enough to authorize requests."""
        store = CredentialStore(refresh_token="refresh")

        assert store.is_usable() is True
        assert store.get_status() is TokenStatus.EXPIRED


@pytest.mark.unit
class TestCredentialStoreSet:
    """Tests for CredentialStore.set()."""

    def test_should_store_new_credentials(self) -> None:
        """Verify set() stores tokens and computes expiry."""
        store = CredentialStore()

        token = store.set("access", refresh="refresh", expires_in=3600, scopes=["a", "b"])

        assert store.get() == token
        assert token.expires_at is not None
        assert token.scopes == ["a", "b"]
        assert store.get_status() is TokenStatus.VALID
        assert store.source is TokenSource.OAUTH_FLOW

    def test_should_keep_refresh_token_when_omitted(self) -> None:
        """Verify a refresh response without refresh_token keeps the old one."""
        store = CredentialStore(access_token="old", refresh_token="keep-me")

        token = store.set("new", expires_in=3600)

        assert token.access_token == "new"
        assert token.refresh_token == "keep-me"

    def test_should_replace_refresh_token_when_rotated(self) -> None:
        """Verify a rotated refresh token replaces the old one."""
        store = CredentialStore(access_token="old", refresh_token="old-refresh")

        token = store.set("new", refresh="new-refresh")

        assert token.refresh_token == "new-refresh"

    def test_should_keep_scopes_when_omitted(self) -> None:
        """Verify scopes survive a refresh that does not report them."""
        store = CredentialStore()
        store.set("first", scopes=["user-top-read"], source=TokenSource.OAUTH_FLOW)

        token = store.set("second")

        assert token.scopes == ["user-top-read"]

    def test_should_record_refresh_time_and_keep_source(self) -> None:
        """Verify refreshes update last_refreshed but not the origin."""
        store = CredentialStore(access_token="access", refresh_token="refresh")

        store.set("refreshed", expires_in=3600)

        stored = store.retrieve()
        assert stored is not None
        assert stored.metadata.source is TokenSource.ENVIRONMENT
        assert stored.metadata.last_refreshed is not None

    def test_should_not_mark_authorization_as_refresh(self) -> None:
        """Verify credentials from a new authorization are not recorded as a refresh."""
        store = CredentialStore(access_token="access")

        store.set("authorized", refresh="refresh", source=TokenSource.OAUTH_FLOW)

        stored = store.retrieve()
        assert stored is not None
        assert stored.metadata.source is TokenSource.OAUTH_FLOW
        assert stored.metadata.last_refreshed is None

    def test_should_report_expired_status(self) -> None:
        """Verify an access token past its expiry is reported as expired."""
        store = CredentialStore()
        store.set("access", expires_in=0)

        assert store.get_status() is TokenStatus.EXPIRED
        assert store.is_usable() is False

    def test_should_accept_concurrent_writers(self) -> None:
        """Verify parallel writes leave one complete credential set."""
        store = CredentialStore()

        threads = [
            threading.Thread(target=store.set, args=(f"access-{i}",), kwargs={"refresh": f"r-{i}"})
            for i in range(20)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        token = store.get()
        assert token is not None
        assert token.access_token is not None
        assert token.access_token.split("-")[1] == token.refresh_token.split("-")[1]  # type: ignore[union-attr]


@pytest.mark.unit
class TestCredentialStoreClear:
    """Tests for CredentialStore.clear()."""

    def test_should_forget_credentials(self) -> None:
        """Verify clear() removes tokens and metadata."""
        store = CredentialStore(access_token="access", refresh_token="refresh")

        store.clear()

        assert store.get() is None
        assert store.retrieve() is None
        assert store.is_usable() is False
