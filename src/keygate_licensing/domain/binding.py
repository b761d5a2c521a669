"""Hardware binding of a subscription."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from uuid import UUID

from keygate.domain.shared.time import utc_now


@dataclass(frozen=True)
class HwidBinding:
    """One fingerprint bound to one subscription.

    At most one binding exists per subscription; while ``locked`` is set the
    fingerprint can only change after an explicit unlock.
    """

    subscription_id: str
    fingerprint: str
    locked: bool
    user_id: UUID | None = None
    bound_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def create(
        cls,
        subscription_id: str,
        fingerprint: str,
        locked: bool,
        user_id: UUID | None = None,
        now: datetime | None = None,
    ) -> HwidBinding:
        now = now or utc_now()
        return cls(
            subscription_id=subscription_id,
            fingerprint=fingerprint,
            locked=locked,
            user_id=user_id,
            bound_at=now,
            updated_at=now,
        )

    def rebind(self, fingerprint: str, locked: bool, now: datetime | None = None) -> HwidBinding:
        now = now or utc_now()
        return replace(self, fingerprint=fingerprint, locked=locked, bound_at=now, updated_at=now)

    def unlocked(self, now: datetime | None = None) -> HwidBinding:
        return replace(self, locked=False, updated_at=now or utc_now())
