"""
Daily WhatsApp reminder job.

Flow (one sequential pass, one provider call per member):
  1. Gate     : skip if admin_summary_log already has a row for today, then claim
                the day by inserting a "running" row; the unique
                (summary_type, run_date) constraint makes a concurrent second
                run lose the insert and skip.
  2. Scan     : subscriptions expiring in N days / today / expired N days ago.
  3. Filter   : per-branch whatsapp_enabled flag, auto-send toggles, windows.
  4. Dispatch : render, send, append one whatsapp_notifications row per attempt.
  5. Log      : mark the run "completed" with the ids actually notified,
                then send the optional admin summary.

A crash after the claim deletes the "running" row so a later trigger can
retry; members already sent today are not messaged again.
"""
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.domain.phone import normalize_phone
from app.domain.reminder import (
    AdminSummaryOutcome,
    DailyJobResult,
    EligibilitySnapshot,
    EligibleSubscription,
    KIND_EXPIRING_SOON,
    KIND_EXPIRING_TODAY,
    KIND_EXPIRED_REMINDER,
    STATUS_SENT,
    STATUS_FAILED,
    STATUS_SKIPPED,
    RUN_RUNNING,
    RUN_COMPLETED,
)
from app.application.branch_policy import BranchPolicyFilter, SKIP_OUTSIDE_WINDOW
from app.application.expiry_scanner import ExpiryScanner
from app.application.reminder_templates import render_message, render_admin_summary
from app.application.whatsapp_client import MessageSender, SendOutcome, build_sender
from app.infrastructure.db.models import AdminSummaryLog, WhatsAppNotification

logger = logging.getLogger(__name__)

MESSAGE_CONTENT_LIMIT = 500
INVALID_PHONE_ERROR = "Invalid phone number"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DailyWhatsAppJob:
    def __init__(
        self,
        db: Session,
        sender: MessageSender,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.db = db
        self.sender = sender
        self.settings = settings or get_settings()
        self.clock = clock or _utc_now
        self.tz = ZoneInfo(self.settings.TIMEZONE)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(self, manual: bool = False) -> DailyJobResult:
        today = self.today()
        logger.info("Daily WhatsApp job for %s (manual=%s)", today, manual)

        if self._already_ran(today):
            logger.info("Daily WhatsApp job already ran on %s, skipping", today)
            return DailyJobResult.skipped_run(today)

        claim = self._claim(today)
        if claim is None:
            logger.warning("Another daily WhatsApp run claimed %s first, skipping", today)
            return DailyJobResult.skipped_run(today)

        try:
            result, snapshot = self._process(today)
            self._complete(claim, result)
        except Exception:
            logger.exception("Daily WhatsApp job failed for %s, releasing run claim", today)
            self._release(claim)
            raise

        if self.settings.ADMIN_WHATSAPP_NUMBER:
            result.admin_summary = self._send_admin_summary(snapshot, result)

        logger.info(
            "Daily WhatsApp job done for %s: sent=%d failed=%d skipped_by_policy=%d",
            today, result.notifications_sent, result.failed, result.skipped_by_policy,
        )
        return result

    def today(self) -> date:
        return self.clock().astimezone(self.tz).date()

    # ------------------------------------------------------------------
    # Gate
    # ------------------------------------------------------------------

    def _day_window(self, day: date) -> tuple[datetime, datetime]:
        """[start, end) of a local calendar day, in UTC."""
        start = datetime.combine(day, time.min, tzinfo=self.tz).astimezone(timezone.utc)
        return start, start + timedelta(days=1)

    def _already_ran(self, today: date) -> bool:
        start, end = self._day_window(today)
        existing = (
            self.db.query(AdminSummaryLog.id)
            .filter(
                AdminSummaryLog.summary_type == self.settings.DAILY_SUMMARY_TYPE,
                or_(
                    AdminSummaryLog.run_date == today,
                    and_(AdminSummaryLog.sent_at >= start, AdminSummaryLog.sent_at < end),
                ),
            )
            .first()
        )
        return existing is not None

    def _claim(self, today: date) -> Optional[AdminSummaryLog]:
        claim = AdminSummaryLog(
            summary_type=self.settings.DAILY_SUMMARY_TYPE,
            run_date=today,
            status=RUN_RUNNING,
            member_ids=[],
            sent_at=self.clock(),
        )
        self.db.add(claim)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return None
        return claim

    # ------------------------------------------------------------------
    # Scan + dispatch
    # ------------------------------------------------------------------

    def _process(self, today: date) -> tuple[DailyJobResult, EligibilitySnapshot]:
        s = self.settings
        policy = BranchPolicyFilter.load(
            self.db,
            default_days_before=s.DEFAULT_EXPIRING_DAYS_BEFORE,
            default_days_after=s.DEFAULT_EXPIRED_DAYS_AFTER,
        )
        snapshot = ExpiryScanner(self.db, max_rows=s.SCAN_MAX_ROWS).scan(
            today, policy.expiring_windows(), policy.expired_lookback()
        )

        result = DailyJobResult(
            run_date=today,
            expiring_soon=len(snapshot.expiring_soon),
            expiring_today=len(snapshot.expiring_today),
            expired_reminders=len(snapshot.recently_expired),
        )

        for kind, rows in (
            (KIND_EXPIRING_SOON, snapshot.expiring_soon),
            (KIND_EXPIRING_TODAY, snapshot.expiring_today),
            (KIND_EXPIRED_REMINDER, snapshot.recently_expired),
        ):
            for row in rows:
                self._dispatch(row, kind, today, policy, result)
        return result, snapshot

    def _dispatch(
        self,
        row: EligibleSubscription,
        kind: str,
        today: date,
        policy: BranchPolicyFilter,
        result: DailyJobResult,
    ) -> None:
        reason = policy.skip_reason(row, kind, today)
        if reason == SKIP_OUTSIDE_WINDOW:
            return
        if reason is not None:
            result.skipped_by_policy += 1
            logger.info("Skipping member %s (%s): %s", row.member_id, kind, reason)
            if self.settings.AUDIT_POLICY_SKIPS:
                self._record(row, kind, STATUS_SKIPPED, phone=None, message=None, error=reason)
            return

        if self._already_sent_today(row, kind, today):
            logger.info("Member %s already received %s today", row.member_id, kind)
            return

        message = render_message(kind, row.member_name, row.end_date, today)
        phone = normalize_phone(row.phone, self.settings.DEFAULT_COUNTRY_CODE)
        if not phone:
            logger.warning("Member %s has no usable phone number (%r)", row.member_id, row.phone)
            self._record(row, kind, STATUS_FAILED, phone=None, message=message, error=INVALID_PHONE_ERROR)
            result.failed += 1
            return

        outcome = self._send(phone, message)

        if outcome.ok:
            self._record(row, kind, STATUS_SENT, phone=phone, message=message)
            result.notifications_sent += 1
            result.sent_member_ids.append(row.member_id)
        else:
            self._record(row, kind, STATUS_FAILED, phone=phone, message=message, error=outcome.error)
            result.failed += 1

    def _send(self, phone: str, message: str) -> SendOutcome:
        try:
            return self.sender.send(phone, message)
        except Exception as exc:
            logger.exception("Sender raised for %s", phone)
            return SendOutcome(ok=False, error=str(exc))

    def _already_sent_today(self, row: EligibleSubscription, kind: str, today: date) -> bool:
        start, end = self._day_window(today)
        return (
            self.db.query(WhatsAppNotification.id)
            .filter(
                WhatsAppNotification.member_id == row.member_id,
                WhatsAppNotification.notification_type == kind,
                WhatsAppNotification.status == STATUS_SENT,
                WhatsAppNotification.sent_at >= start,
                WhatsAppNotification.sent_at < end,
            )
            .first()
            is not None
        )

    def _record(
        self,
        row: EligibleSubscription,
        kind: str,
        status: str,
        phone: Optional[str],
        message: Optional[str],
        error: Optional[str] = None,
    ) -> None:
        self.db.add(WhatsAppNotification(
            member_id=row.member_id,
            notification_type=kind,
            status=status,
            branch_id=row.branch_id,
            recipient_phone=phone,
            recipient_name=row.member_name,
            message_content=(message or "")[:MESSAGE_CONTENT_LIMIT] or None,
            error_message=error,
            is_manual=False,
            sent_at=self.clock(),
        ))
        self.db.commit()

    # ------------------------------------------------------------------
    # Run log + admin summary
    # ------------------------------------------------------------------

    def _complete(self, claim: AdminSummaryLog, result: DailyJobResult) -> None:
        claim.status = RUN_COMPLETED
        # sent_at keeps the claim time so it always falls on run_date
        claim.member_ids = [str(member_id) for member_id in result.sent_member_ids]
        self.db.commit()

    def _release(self, claim: AdminSummaryLog) -> None:
        try:
            self.db.rollback()
            self.db.query(AdminSummaryLog).filter(AdminSummaryLog.id == claim.id).delete()
            self.db.commit()
        except Exception:
            logger.exception("Could not release daily WhatsApp run claim %s", claim.id)

    def _send_admin_summary(self, snapshot: EligibilitySnapshot, result: DailyJobResult) -> AdminSummaryOutcome:
        try:
            text = render_admin_summary(
                snapshot,
                sent=result.notifications_sent,
                failed=result.failed,
                limit=self.settings.ADMIN_SUMMARY_DISPLAY_LIMIT,
            )
            phone = normalize_phone(self.settings.ADMIN_WHATSAPP_NUMBER, self.settings.DEFAULT_COUNTRY_CODE)
            outcome = self.sender.send(phone, text)
        except Exception as exc:
            logger.exception("Admin summary failed")
            return AdminSummaryOutcome(sent=False, error=str(exc))
        if not outcome.ok:
            return AdminSummaryOutcome(sent=False, error=outcome.error or "send failed")
        return AdminSummaryOutcome(sent=True)


def run_daily_whatsapp_job(
    db: Session,
    settings: Optional[Settings] = None,
    sender: Optional[MessageSender] = None,
    manual: bool = False,
) -> DailyJobResult:
    """
    Build the job from settings and run it once.

    Raises:
        ConfigurationError: provider or database credentials are missing
    """
    settings = settings or get_settings()
    settings.require_job_credentials()
    if sender is None:
        sender = build_sender(settings)
    return DailyWhatsAppJob(db, sender, settings).run(manual=manual)
