"""
WhatsApp message templates for member reminders and the admin daily summary.
"""
import re
from datetime import date

from app.domain.reminder import (
    EligibilitySnapshot,
    KIND_EXPIRING_SOON,
    KIND_EXPIRING_TODAY,
    KIND_EXPIRED_REMINDER,
    KIND_RENEWAL,
    KIND_NEW_REGISTRATION,
    KIND_CUSTOM,
)

# ---------------------------------------------------------------------------
# Member templates
# ---------------------------------------------------------------------------

_TEMPLATES: dict[str, str] = {
    KIND_EXPIRING_SOON: (
        "⚠️ Hi {name}!\n\n"
        "Your gym membership expires in *{days} {day_word}* ({date}).\n\n"
        "Renew now to avoid any interruption! 🏃"
    ),
    KIND_EXPIRING_TODAY: (
        "🚨 Hi {name}!\n\n"
        "Your gym membership expires *TODAY*!\n\n"
        "Please renew immediately to continue your fitness journey. 💪"
    ),
    KIND_EXPIRED_REMINDER: (
        "⛔ Hi {name}!\n\n"
        "Your gym membership expired *{days} {day_word} ago* ({date}).\n\n"
        "We miss you! Renew now to get back on track with your fitness goals 💪\n\n"
        "🎁 Renew within 7 days for exclusive benefits!"
    ),
    KIND_RENEWAL: (
        "✅ *Membership Renewed Successfully!*\n\n"
        "Hi {name}, 👋\n\n"
        "Your gym membership has been *renewed till {date}*.\n\n"
        "Let's stay consistent and keep pushing towards your fitness goals 💪🔥\n\n"
        "See you at the gym!\n— {team}"
    ),
    KIND_NEW_REGISTRATION: (
        "🎉 *Welcome to {gym}!*\n\n"
        "Hi {name}, 👋\n\n"
        "Congratulations on starting your fitness journey! 🏋️\n\n"
        "Your membership is now *active till {date}*.\n\n"
        "See you at the gym!\n— {team}"
    ),
}

_PLACEHOLDER = re.compile(r"\{(name|expiry_date|days|branch_name)\}", re.IGNORECASE)


def format_date(value: date) -> str:
    """Message date style, e.g. "19 October 2026"."""
    return f"{value.day} {value:%B %Y}"


def _day_word(days: int) -> str:
    return "day" if abs(days) == 1 else "days"


def render_message(
    kind: str,
    name: str,
    end_date: date,
    today: date,
    gym_name: str = "Pro Plus Fitness",
    branch_name: str | None = None,
) -> str:
    """
    Render a member message for a built-in kind.

    Raises:
        KeyError: kind has no built-in template (custom messages go through render_custom)
    """
    tmpl = _TEMPLATES[kind]
    days = abs((end_date - today).days)
    gym = f"{gym_name} - {branch_name}" if branch_name else gym_name
    team = f"Team {gym_name} ({branch_name})" if branch_name else f"Team {gym_name}"
    return tmpl.format(
        name=name,
        date=format_date(end_date),
        days=days,
        day_word=_day_word(days),
        gym=gym,
        team=team,
    )


def render_custom(
    template: str,
    name: str,
    end_date: date | None,
    today: date,
    gym_name: str = "Pro Plus Fitness",
    branch_name: str | None = None,
) -> str:
    """Replace {name}, {expiry_date}, {days}, {branch_name} (case-insensitive)."""
    values = {
        "name": name,
        "expiry_date": format_date(end_date) if end_date else "",
        "days": str(abs((end_date - today).days)) if end_date else "",
        "branch_name": branch_name or gym_name,
    }
    return _PLACEHOLDER.sub(lambda m: values[m.group(1).lower()], template)


def has_template(kind: str) -> bool:
    return kind in _TEMPLATES or kind == KIND_CUSTOM


# ---------------------------------------------------------------------------
# Admin summary
# ---------------------------------------------------------------------------

def render_admin_summary(
    snapshot: EligibilitySnapshot,
    sent: int,
    failed: int,
    limit: int = 10,
) -> str:
    """Aggregated daily summary for the gym admin."""
    lines = ["📊 *Daily Gym Summary*", ""]

    soon = snapshot.expiring_soon
    lines.append(f"⚠️ *Expiring Soon ({len(soon)}):*")
    if soon:
        lines.extend(f"• {s.member_name} ({s.phone})" for s in soon[:limit])
        if len(soon) > limit:
            lines.append(f"_...and {len(soon) - limit} more_")
    else:
        lines.append("_None_")

    today_rows = snapshot.expiring_today
    lines.append("")
    lines.append(f"🔴 *Expiring Today ({len(today_rows)}):*")
    if today_rows:
        lines.extend(f"• {s.member_name} ({s.phone})" for s in today_rows[:limit])
        if len(today_rows) > limit:
            lines.append(f"_...and {len(today_rows) - limit} more_")
    else:
        lines.append("_None_")

    # one line per member even if several expired subscriptions matched
    unique_expired = {}
    for s in snapshot.recently_expired:
        unique_expired.setdefault(s.member_id, s)
    expired = list(unique_expired.values())
    lines.append("")
    lines.append(f"❌ *Recently Expired ({len(expired)}):*")
    if expired:
        for s in expired[:limit]:
            lines.append(f"• {s.member_name} (expired {s.days_since(snapshot.today)} days ago)")
        if len(expired) > limit:
            lines.append(f"_...and {len(expired) - limit} more_")
    else:
        lines.append("_None_")

    lines.append("")
    lines.append(f"✅ *Notifications Sent: {sent}*")
    if failed > 0:
        lines.append(f"❌ *Failed: {failed}*")
    return "\n".join(lines)
