"""
Expiry reminder domain objects - notification kinds, eligible rows, job result
"""
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

# Notification kinds sent by the daily job
KIND_EXPIRING_SOON = "expiring_2days"     # N days before end_date (name kept for stored rows)
KIND_EXPIRING_TODAY = "expiring_today"
KIND_EXPIRED_REMINDER = "expired_reminder"  # N days after end_date

DAILY_KINDS = (KIND_EXPIRING_SOON, KIND_EXPIRING_TODAY, KIND_EXPIRED_REMINDER)

# Kinds available for manual sends
KIND_RENEWAL = "renewal"
KIND_NEW_REGISTRATION = "new_registration"
KIND_CUSTOM = "custom"

MANUAL_KINDS = DAILY_KINDS + (KIND_RENEWAL, KIND_NEW_REGISTRATION, KIND_CUSTOM)

# NotificationRecord statuses
STATUS_SENT = "sent"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"

# Subscription statuses
SUBSCRIPTION_EXPIRED = "expired"

# RunLog statuses
RUN_RUNNING = "running"
RUN_COMPLETED = "completed"


@dataclass(frozen=True)
class EligibleSubscription:
    """
    One subscription row matched by the eligibility scanner.

    branch_id is the effective branch: the subscription's own branch,
    falling back to the member's branch.
    """
    subscription_id: uuid.UUID
    member_id: uuid.UUID
    member_name: str
    phone: str
    branch_id: Optional[uuid.UUID]
    end_date: date

    def days_until(self, today: date) -> int:
        return (self.end_date - today).days

    def days_since(self, today: date) -> int:
        return (today - self.end_date).days


@dataclass
class EligibilitySnapshot:
    """The three eligible sets for one reference date"""
    today: date
    expiring_soon: List[EligibleSubscription] = field(default_factory=list)
    expiring_today: List[EligibleSubscription] = field(default_factory=list)
    recently_expired: List[EligibleSubscription] = field(default_factory=list)


@dataclass
class AdminSummaryOutcome:
    sent: bool = False
    error: Optional[str] = None


@dataclass
class DailyJobResult:
    """
    Outcome of one daily job invocation, serialized as the HTTP response body.
    """
    run_date: date
    skipped: bool = False
    message: Optional[str] = None
    expiring_soon: int = 0
    expiring_today: int = 0
    expired_reminders: int = 0
    notifications_sent: int = 0
    failed: int = 0
    skipped_by_policy: int = 0
    sent_member_ids: List[uuid.UUID] = field(default_factory=list)
    admin_summary: Optional[AdminSummaryOutcome] = None

    @classmethod
    def skipped_run(cls, run_date: date, message: str = "Daily job already ran today") -> "DailyJobResult":
        return cls(run_date=run_date, skipped=True, message=message)

    def to_dict(self) -> Dict[str, Any]:
        if self.skipped:
            return {
                "success": True,
                "skipped": True,
                "message": self.message,
                "runDate": self.run_date.isoformat(),
            }
        return {
            "success": True,
            "skipped": False,
            "runDate": self.run_date.isoformat(),
            "expiringSoon": self.expiring_soon,
            "expiringToday": self.expiring_today,
            "expiredReminders": self.expired_reminders,
            "notificationsSent": self.notifications_sent,
            "failed": self.failed,
            "skippedByPolicy": self.skipped_by_policy,
            "adminSummary": (
                {"sent": self.admin_summary.sent, "error": self.admin_summary.error}
                if self.admin_summary is not None
                else None
            ),
        }
