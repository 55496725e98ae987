"""
Per-branch messaging policy for automatic WhatsApp reminders.

A branch sends automatic reminders only when its gym_settings row has
whatsapp_enabled=True. On top of that, whatsapp_auto_send holds per-kind
toggles and the reminder windows:

    {"expiring_2days": true, "expiring_today": true, "expired_reminder": false,
     "expiring_days_before": 2, "expired_days_after": 7}

Missing keys fall back to AUTO_SEND_DEFAULTS and the configured windows.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from app.domain.reminder import (
    EligibleSubscription,
    KIND_EXPIRING_SOON,
    KIND_EXPIRING_TODAY,
    KIND_EXPIRED_REMINDER,
)
from app.infrastructure.db.models import GymSettings

logger = logging.getLogger(__name__)

AUTO_SEND_DEFAULTS: dict[str, bool] = {
    KIND_EXPIRING_SOON: True,
    KIND_EXPIRING_TODAY: True,
    KIND_EXPIRED_REMINDER: False,
}

# Skip reasons
SKIP_BRANCH_UNRESOLVED = "branch_unresolved"
SKIP_MESSAGING_DISABLED = "branch_messaging_disabled"
SKIP_AUTO_SEND_DISABLED = "auto_send_disabled"
SKIP_OUTSIDE_WINDOW = "outside_branch_window"


@dataclass
class BranchPolicy:
    branch_id: uuid.UUID
    whatsapp_enabled: bool
    auto_send: dict = field(default_factory=dict)

    def allows(self, kind: str) -> bool:
        value = self.auto_send.get(kind)
        if value is None:
            return AUTO_SEND_DEFAULTS.get(kind, True)
        return bool(value)

    def days_before(self, default: int) -> int:
        return self._window("expiring_days_before", default)

    def days_after(self, default: int) -> int:
        return self._window("expired_days_after", default)

    def _window(self, key: str, default: int) -> int:
        """Non-negative whole number of days from the prefs, else the default"""
        value = self.auto_send.get(key)
        if value is None:
            return default
        if isinstance(value, str) and value.strip().isdecimal():
            return int(value)
        if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
            return value
        logger.warning(
            "Branch %s has invalid %s=%r, using default %d", self.branch_id, key, value, default
        )
        return default


class BranchPolicyFilter:
    """Decides, per eligible row and kind, whether a reminder may be sent."""

    def __init__(
        self,
        policies: dict[uuid.UUID, BranchPolicy],
        default_days_before: int = 2,
        default_days_after: int = 7,
    ):
        self.policies = policies
        self.default_days_before = default_days_before
        self.default_days_after = default_days_after

    @classmethod
    def load(cls, db: Session, default_days_before: int = 2, default_days_after: int = 7) -> "BranchPolicyFilter":
        rows = db.query(GymSettings).filter(GymSettings.branch_id.isnot(None)).all()
        policies = {
            row.branch_id: BranchPolicy(
                branch_id=row.branch_id,
                whatsapp_enabled=row.whatsapp_enabled is True,
                auto_send=dict(row.whatsapp_auto_send or {}),
            )
            for row in rows
        }
        logger.info("Loaded messaging policy for %d branches", len(policies))
        return cls(policies, default_days_before, default_days_after)

    def get(self, branch_id: Optional[uuid.UUID]) -> Optional[BranchPolicy]:
        if branch_id is None:
            return None
        return self.policies.get(branch_id)

    def is_enabled(self, branch_id: Optional[uuid.UUID]) -> bool:
        policy = self.get(branch_id)
        return policy is not None and policy.whatsapp_enabled

    def expiring_windows(self) -> set[int]:
        """Distinct days-before values to scan; the default when no branch contributes one."""
        windows = {
            p.days_before(self.default_days_before)
            for p in self.policies.values()
            if p.whatsapp_enabled and p.auto_send.get(KIND_EXPIRING_SOON) is not False
        }
        return windows or {self.default_days_before}

    def expired_lookback(self) -> int:
        """Largest days-after value among branches with expired reminders switched on."""
        windows = [
            p.days_after(self.default_days_after)
            for p in self.policies.values()
            if p.whatsapp_enabled and p.auto_send.get(KIND_EXPIRED_REMINDER) is True
        ]
        return max(windows) if windows else self.default_days_after

    def skip_reason(self, row: EligibleSubscription, kind: str, today: date) -> Optional[str]:
        """None when the reminder may be sent, otherwise the reason it is not."""
        if row.branch_id is None:
            return SKIP_BRANCH_UNRESOLVED
        policy = self.get(row.branch_id)
        if policy is None or not policy.whatsapp_enabled:
            return SKIP_MESSAGING_DISABLED
        if not policy.allows(kind):
            return SKIP_AUTO_SEND_DISABLED
        if kind == KIND_EXPIRING_SOON and row.days_until(today) != policy.days_before(self.default_days_before):
            return SKIP_OUTSIDE_WINDOW
        if kind == KIND_EXPIRED_REMINDER and row.days_since(today) != policy.days_after(self.default_days_after):
            return SKIP_OUTSIDE_WINDOW
        return None
