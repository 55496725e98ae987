"""
Tests for reminder message templates and the admin daily summary.
"""
import uuid
from datetime import date, timedelta

import pytest

from app.application.reminder_templates import (
    format_date,
    render_message,
    render_custom,
    render_admin_summary,
)
from app.domain.reminder import EligibilitySnapshot, EligibleSubscription

TODAY = date(2026, 3, 10)


def _row(name, days, member_id=None):
    return EligibleSubscription(
        subscription_id=uuid.uuid4(),
        member_id=member_id or uuid.uuid4(),
        member_name=name,
        phone=f"98765{abs(days):05d}",
        branch_id=None,
        end_date=TODAY + timedelta(days=days),
    )


def test_format_date():
    assert format_date(date(2026, 10, 19)) == "19 October 2026"
    assert format_date(date(2026, 3, 1)) == "1 March 2026"


def test_expiring_soon_message():
    text = render_message("expiring_2days", "Aarav", date(2026, 3, 12), TODAY)
    assert "Hi Aarav!" in text
    assert "*2 days*" in text
    assert "12 March 2026" in text


def test_expiring_soon_singular_day():
    text = render_message("expiring_2days", "Aarav", date(2026, 3, 11), TODAY)
    assert "*1 day*" in text


def test_expiring_today_message():
    text = render_message("expiring_today", "Diya", TODAY, TODAY)
    assert "Hi Diya!" in text
    assert "*TODAY*" in text


def test_expired_reminder_message():
    text = render_message("expired_reminder", "Kabir", date(2026, 3, 3), TODAY)
    assert "*7 days ago*" in text
    assert "3 March 2026" in text


def test_renewal_uses_branch_team_name():
    text = render_message("renewal", "Meera", date(2026, 4, 10), TODAY, branch_name="Dinhata")
    assert "Team Pro Plus Fitness (Dinhata)" in text
    assert "10 April 2026" in text


def test_unknown_kind_raises():
    with pytest.raises(KeyError):
        render_message("promotional", "Aarav", TODAY, TODAY)


def test_custom_placeholders_case_insensitive():
    text = render_custom(
        "Hi {NAME}, plan ends {expiry_date} ({Days} days) at {branch_name}",
        "Aarav", date(2026, 3, 15), TODAY, branch_name="Dinhata",
    )
    assert text == "Hi Aarav, plan ends 15 March 2026 (5 days) at Dinhata"


def test_custom_without_subscription_and_branch():
    text = render_custom("{name} @ {branch_name} {expiry_date}", "Aarav", None, TODAY)
    assert text == "Aarav @ Pro Plus Fitness "


class TestAdminSummary:

    def test_empty_sets(self):
        text = render_admin_summary(EligibilitySnapshot(today=TODAY), sent=0, failed=0)
        assert "📊 *Daily Gym Summary*" in text
        assert text.count("_None_") == 3
        assert "✅ *Notifications Sent: 0*" in text
        assert "Failed" not in text

    def test_truncates_with_more_suffix(self):
        snap = EligibilitySnapshot(
            today=TODAY,
            expiring_soon=[_row(f"Soon{i}", 2) for i in range(12)],
        )
        text = render_admin_summary(snap, sent=12, failed=0, limit=10)
        assert "⚠️ *Expiring Soon (12):*" in text
        assert "Soon9" in text
        assert "Soon10" not in text
        assert "_...and 2 more_" in text

    def test_expired_unique_per_member_with_days_ago(self):
        member_id = uuid.uuid4()
        snap = EligibilitySnapshot(
            today=TODAY,
            recently_expired=[_row("Kabir", -3, member_id), _row("Kabir", -5, member_id)],
        )
        text = render_admin_summary(snap, sent=0, failed=2)
        assert "❌ *Recently Expired (1):*" in text
        assert "• Kabir (expired 3 days ago)" in text
        assert "❌ *Failed: 2*" in text
