"""Unit tests for the in-memory token revocation store."""

from datetime import timedelta

from keygate_identity.services import InMemoryTokenRevocationStore
from tests.shared.fixtures.factories import FIXED_NOW, FrozenClock


class TestInMemoryTokenRevocationStore:
    def setup_method(self):
        """Set up test fixtures."""
        self.clock = FrozenClock()
        self.store = InMemoryTokenRevocationStore(clock=self.clock)

    def test_unknown_token_is_not_revoked(self):
        assert self.store.is_revoked("jti-1") is False

    def test_revoked_until_expiry(self):
        self.store.revoke("jti-1", FIXED_NOW + timedelta(hours=1))

        assert self.store.is_revoked("jti-1") is True

    def test_entry_forgotten_after_expiry(self):
        """An expired token needs no revocation entry."""
        self.store.revoke("jti-1", FIXED_NOW + timedelta(hours=1))
        self.clock.advance(hours=1)

        assert self.store.is_revoked("jti-1") is False
        assert len(self.store) == 0

    def test_purge_expired(self):
        self.store.revoke("old", FIXED_NOW + timedelta(minutes=5))
        self.store.revoke("new", FIXED_NOW + timedelta(hours=5))
        self.clock.advance(hours=1)

        assert self.store.purge_expired() == 1
        assert len(self.store) == 1
        assert self.store.is_revoked("new") is True

    def test_revocations_sweep_expired_entries(self):
        store = InMemoryTokenRevocationStore(clock=self.clock, purge_every=2)
        store.revoke("old", FIXED_NOW + timedelta(minutes=5))
        self.clock.advance(hours=1)

        store.revoke("new", FIXED_NOW + timedelta(hours=5))

        assert len(store) == 1
        assert store.is_revoked("new") is True
