"""
Manual WhatsApp send: staff-triggered messages to selected members.

Same sender, templates and audit table as the daily job; records are
written with is_manual=True. Branch messaging must not be switched off.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.domain.phone import normalize_phone
from app.domain.reminder import MANUAL_KINDS, KIND_CUSTOM, STATUS_SENT, STATUS_FAILED
from app.application.reminder_templates import render_message, render_custom
from app.application.whatsapp_client import MessageSender
from app.infrastructure.db.models import Branch, GymSettings, Member, Subscription, WhatsAppNotification

logger = logging.getLogger(__name__)


class ManualSendError(ValueError):
    pass


class ManualSendUseCase:
    def __init__(self, db: Session, sender: MessageSender, settings: Optional[Settings] = None):
        self.db = db
        self.sender = sender
        self.settings = settings or get_settings()

    def execute(
        self,
        member_ids: list[uuid.UUID],
        kind: str,
        custom_message: Optional[str] = None,
        branch_id: Optional[uuid.UUID] = None,
        admin_user_id: Optional[str] = None,
    ) -> dict:
        if not member_ids:
            raise ManualSendError("No members selected")
        if kind not in MANUAL_KINDS:
            raise ManualSendError(f"Unknown message type: {kind}")
        if kind == KIND_CUSTOM and not (custom_message or "").strip():
            raise ManualSendError("Custom message is empty")

        gym_settings = self._gym_settings(branch_id)
        if gym_settings is not None and gym_settings.whatsapp_enabled is False:
            error = "WhatsApp messaging is disabled for this branch" if branch_id else "WhatsApp messaging is disabled"
            return {"success": False, "error": error}

        gym_name = (gym_settings.gym_name if gym_settings is not None else None) or self.settings.GYM_DISPLAY_NAME
        branch_name = None
        if branch_id is not None:
            branch = self.db.get(Branch, branch_id)
            branch_name = branch.name if branch else None

        today = datetime.now(ZoneInfo(self.settings.TIMEZONE)).date()
        members = self.db.query(Member).filter(Member.id.in_(member_ids)).all()
        missing = len(set(member_ids)) - len(members)

        sent = failed = 0
        for member in members:
            end_date = self._latest_end_date(member.id)
            if kind == KIND_CUSTOM:
                message = render_custom(
                    custom_message, member.name, end_date, today,
                    gym_name=gym_name, branch_name=branch_name,
                )
            elif end_date is None:
                logger.warning("Member %s has no subscription, skipping %s", member.id, kind)
                failed += 1
                self._record(member, kind, STATUS_FAILED, None, None, "No subscription found", branch_id)
                continue
            else:
                message = render_message(
                    kind, member.name, end_date, today,
                    gym_name=gym_name, branch_name=branch_name,
                )

            phone = normalize_phone(member.phone, self.settings.DEFAULT_COUNTRY_CODE)
            if not phone:
                failed += 1
                self._record(member, kind, STATUS_FAILED, None, message, "Invalid phone number", branch_id)
                continue

            outcome = self.sender.send(phone, message)
            if outcome.ok:
                sent += 1
                self._record(member, kind, STATUS_SENT, phone, message, None, branch_id)
            else:
                failed += 1
                self._record(member, kind, STATUS_FAILED, phone, message, outcome.error, branch_id)

        logger.info(
            "Manual WhatsApp send (%s) by %s: sent=%d failed=%d not_found=%d",
            kind, admin_user_id or "unknown", sent, failed, missing,
        )
        return {"success": True, "sent": sent, "failed": failed, "notFound": missing}

    def _gym_settings(self, branch_id: Optional[uuid.UUID]) -> Optional[GymSettings]:
        q = self.db.query(GymSettings)
        if branch_id is not None:
            q = q.filter(GymSettings.branch_id == branch_id)
        else:
            q = q.filter(GymSettings.branch_id.is_(None))
        return q.first()

    def _latest_end_date(self, member_id: uuid.UUID):
        sub = (
            self.db.query(Subscription)
            .filter(Subscription.member_id == member_id)
            .order_by(Subscription.end_date.desc())
            .first()
        )
        return sub.end_date if sub else None

    def _record(self, member, kind, status, phone, message, error, branch_id) -> None:
        self.db.add(WhatsAppNotification(
            member_id=member.id,
            notification_type=kind,
            status=status,
            branch_id=branch_id or member.branch_id,
            recipient_phone=phone,
            recipient_name=member.name,
            message_content=(message or "")[:500] or None,
            error_message=error,
            is_manual=True,
            sent_at=datetime.now(timezone.utc),
        ))
        self.db.commit()
