"""
Eligibility scanner: subscriptions expiring soon, expiring today, recently expired.

All three sets are read from subscriptions joined with members. A member
with several matching subscriptions appears once per set.
"""
import logging
from datetime import date, timedelta
from typing import Iterable

from sqlalchemy.orm import Session, contains_eager

from app.domain.reminder import EligibleSubscription, EligibilitySnapshot, SUBSCRIPTION_EXPIRED
from app.infrastructure.db.models import Subscription

logger = logging.getLogger(__name__)


class EligibilityCapExceeded(RuntimeError):
    """A query returned more rows than SCAN_MAX_ROWS; nothing is sent."""


class ExpiryScanner:
    def __init__(self, db: Session, max_rows: int = 1000):
        self.db = db
        self.max_rows = max_rows

    def scan(self, today: date, expiring_windows: Iterable[int], expired_lookback: int) -> EligibilitySnapshot:
        snapshot = EligibilitySnapshot(today=today)

        soon: list[EligibleSubscription] = []
        for days in sorted(set(expiring_windows)):
            soon.extend(self.expiring_on(today + timedelta(days=days)))
        snapshot.expiring_soon = _unique_members(soon)

        snapshot.expiring_today = self.expiring_on(today)
        snapshot.recently_expired = self.expired_between(today - timedelta(days=expired_lookback), today)

        logger.info(
            "Eligibility for %s: expiring_soon=%d expiring_today=%d recently_expired=%d",
            today,
            len(snapshot.expiring_soon),
            len(snapshot.expiring_today),
            len(snapshot.recently_expired),
        )
        return snapshot

    def expiring_on(self, end_date: date) -> list[EligibleSubscription]:
        """Not-yet-expired subscriptions ending exactly on end_date."""
        q = self._base_query().filter(
            Subscription.end_date == end_date,
            Subscription.status != SUBSCRIPTION_EXPIRED,
        )
        return _unique_members(self._fetch(q, f"expiring on {end_date}"))

    def expired_between(self, since: date, until: date) -> list[EligibleSubscription]:
        """Expired subscriptions with since <= end_date < until."""
        q = self._base_query().filter(
            Subscription.status == SUBSCRIPTION_EXPIRED,
            Subscription.end_date >= since,
            Subscription.end_date < until,
        )
        return _unique_members(self._fetch(q, f"expired since {since}"))

    def _base_query(self):
        return (
            self.db.query(Subscription)
            .join(Subscription.member)
            .options(contains_eager(Subscription.member))
            .order_by(Subscription.end_date, Subscription.created_at, Subscription.id)
        )

    def _fetch(self, q, label: str) -> list[EligibleSubscription]:
        subs = q.limit(self.max_rows + 1).all()
        if len(subs) > self.max_rows:
            raise EligibilityCapExceeded(
                f"More than {self.max_rows} subscriptions {label}; refusing to send"
            )
        return [
            EligibleSubscription(
                subscription_id=sub.id,
                member_id=sub.member.id,
                member_name=sub.member.name,
                phone=sub.member.phone,
                branch_id=sub.branch_id or sub.member.branch_id,
                end_date=sub.end_date,
            )
            for sub in subs
        ]


def _unique_members(rows: list[EligibleSubscription]) -> list[EligibleSubscription]:
    seen = set()
    out = []
    for row in rows:
        if row.member_id in seen:
            continue
        seen.add(row.member_id)
        out.append(row)
    return out
