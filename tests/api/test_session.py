"""Tests for session management."""

import time
from unittest.mock import patch

import pytest

from api.session import SessionRegistry, SessionSigner
from core.client import AuthorityClient, RetryPolicy
from core.game import RoundStore, RoundStatus


class TestSessionSigner:
    """Tests for SessionSigner class."""

    def test_sign_creates_token(self):
        """Test that sign creates a non-empty token."""
        signer = SessionSigner(secret_key="test-secret")
        session_id = "test-session-123"

        token = signer.sign(session_id)

        assert len(token) > 0
        assert token != session_id

    def test_unsign_returns_original_id(self):
        """Test that unsign returns the original session ID."""
        signer = SessionSigner(secret_key="test-secret")

        token = signer.sign("test-session-456")

        assert signer.unsign(token, max_age=3600) == "test-session-456"

    def test_unsign_invalid_token_returns_none(self):
        """Test that unsign returns None for invalid tokens."""
        signer = SessionSigner(secret_key="test-secret")

        assert signer.unsign("invalid-token-data", max_age=3600) is None

    def test_unsign_wrong_secret_returns_none(self):
        """Test that unsign returns None when using wrong secret key."""
        signer1 = SessionSigner(secret_key="secret-one")
        signer2 = SessionSigner(secret_key="secret-two")

        token = signer1.sign("test-session")

        assert signer2.unsign(token, max_age=3600) is None

    def test_unsign_expired_token_returns_none(self):
        """Test that unsign returns None for expired tokens."""
        signer = SessionSigner(secret_key="test-secret")
        token = signer.sign("test-session")

        original_time = time.time

        def mock_time():
            return original_time() + 7200  # 2 hours later

        with patch("time.time", mock_time):
            result = signer.unsign(token, max_age=3600)

        assert result is None


@pytest.fixture
def registry(authority, rules):
    """Registry whose stores talk to the fake authority."""

    def factory() -> RoundStore:
        client = AuthorityClient(
            "http://authority.test",
            retry=RetryPolicy(attempts=0, delay=0),
            transport=authority.transport(),
        )
        return RoundStore(client, rules=rules)

    return SessionRegistry(factory=factory, signer=SessionSigner(secret_key="test-secret"))


class TestSessionRegistry:
    """Tests for SessionRegistry class."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, registry):
        token, store = registry.create()

        assert registry.get(token) is store
        assert len(registry) == 1
        assert store.status == RoundStatus.BETTING
        await registry.close_all()

    @pytest.mark.asyncio
    async def test_sessions_are_isolated(self, registry):
        token1, store1 = registry.create()
        token2, store2 = registry.create()

        store1.place_bet(100)

        assert token1 != token2
        assert store1 is not store2
        assert store2.status == RoundStatus.BETTING
        assert store2.balance == store1.balance + 100
        await registry.close_all()

    def test_unknown_token(self, registry):
        assert registry.get("not-a-token") is None

    def test_token_from_other_secret(self, registry):
        token = SessionSigner(secret_key="other").sign("session")
        assert registry.get(token) is None

    @pytest.mark.asyncio
    async def test_delete(self, registry):
        token, store = registry.create()

        await registry.delete(token)

        assert registry.get(token) is None
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_delete_unknown_token(self, registry):
        await registry.delete("not-a-token")
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_expired_sessions(self, authority, rules):
        registry = SessionRegistry(
            factory=lambda: RoundStore(
                AuthorityClient("http://authority.test", transport=authority.transport()),
                rules=rules,
            ),
            signer=SessionSigner(secret_key="test-secret"),
            ttl=1,
        )
        token, _ = registry.create()

        time.sleep(1.5)

        assert registry.get(token) is None
        assert await registry.cleanup_expired() == 1
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_close_all(self, registry):
        registry.create()
        registry.create()

        await registry.close_all()

        assert len(registry) == 0
