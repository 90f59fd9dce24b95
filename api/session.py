"""Browser sessions: signed tokens mapped to in-memory round stores."""

import logging
from datetime import datetime, timedelta
from typing import Callable
from uuid import uuid4

from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired

from config import config
from core.client import AuthorityClient
from core.game import RoundStore

logger = logging.getLogger(__name__)


class SessionSigner:
    """Sign and verify session IDs using itsdangerous."""

    def __init__(self, secret_key: str | None = None) -> None:
        """Initialize the signer with a secret key."""
        self._secret_key = secret_key or config.security.secret_key
        self._serializer = URLSafeTimedSerializer(self._secret_key)

    def sign(self, session_id: str) -> str:
        """Create a signed token from a session ID."""
        return self._serializer.dumps(session_id)

    def unsign(self, token: str, max_age: int | None = None) -> str | None:
        """
        Verify and extract session_id from a signed token.

        Args:
            token: The signed token to verify
            max_age: Maximum age in seconds (defaults to session_ttl)

        Returns:
            The session ID if valid, None otherwise
        """
        max_age = max_age or config.session_ttl
        try:
            return self._serializer.loads(token, max_age=max_age)
        except (BadSignature, SignatureExpired):
            return None


StoreFactory = Callable[[], RoundStore]


def default_store_factory() -> RoundStore:
    """Build a round store wired to the configured authority."""
    client = AuthorityClient.from_config(config.authority, client_version=config.app_version)
    return RoundStore(client, rules=config.game)


class SessionRegistry:
    """
    In-memory map from signed session tokens to round stores.

    Each browser session owns exactly one store; there is no persistence.
    """

    def __init__(
        self,
        factory: StoreFactory | None = None,
        signer: SessionSigner | None = None,
        ttl: int | None = None,
    ) -> None:
        self._factory = factory or default_store_factory
        self._signer = signer or SessionSigner()
        self._ttl = ttl or config.session_ttl
        self._stores: dict[str, tuple[RoundStore, datetime]] = {}

    def create(self) -> tuple[str, RoundStore]:
        """Create a new session; returns its signed token and store."""
        session_id = str(uuid4())
        store = self._factory()
        self._stores[session_id] = (store, self._expiry())
        return self._signer.sign(session_id), store

    def get(self, token: str) -> RoundStore | None:
        """Return the store for a token, refreshing its expiry."""
        session_id = self._signer.unsign(token, max_age=self._ttl)
        if session_id is None or session_id not in self._stores:
            return None

        store, expiry = self._stores[session_id]
        if expiry < datetime.now():
            return None

        self._stores[session_id] = (store, self._expiry())
        return store

    async def delete(self, token: str) -> None:
        """Close and forget a session."""
        session_id = self._signer.unsign(token, max_age=self._ttl)
        if session_id is None:
            return
        entry = self._stores.pop(session_id, None)
        if entry is not None:
            await entry[0].close()

    async def cleanup_expired(self) -> int:
        """Close expired sessions."""
        now = datetime.now()
        expired = [sid for sid, (_, expiry) in self._stores.items() if expiry < now]
        for sid in expired:
            store, _ = self._stores.pop(sid)
            await store.close()
        if expired:
            logger.info("Closed %d expired sessions", len(expired))
        return len(expired)

    async def close_all(self) -> None:
        for store, _ in self._stores.values():
            await store.close()
        self._stores.clear()

    def __len__(self) -> int:
        return len(self._stores)

    def _expiry(self) -> datetime:
        return datetime.now() + timedelta(seconds=self._ttl)


# Global registry instance
_registry: SessionRegistry | None = None


def get_registry() -> SessionRegistry:
    """Get or create the session registry."""
    global _registry
    if _registry is None:
        _registry = SessionRegistry()
    return _registry
