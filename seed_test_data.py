"""
Seed a local database with one branch and members whose subscriptions hit
every reminder window relative to today (Asia/Kolkata by default).
Run:  python seed_test_data.py
"""
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

# ── bootstrap ────────────────────────────────────────────────────
from app.config import get_settings
from app.infrastructure.db.session import get_session_factory
from app.infrastructure.db.models import Branch, GymSettings, Member, Subscription

settings = get_settings()
today = datetime.now(ZoneInfo(settings.TIMEZONE)).date()
db = get_session_factory()()

branch = db.query(Branch).filter_by(name="Dinhata").first()
if branch:
    print(f"Branch exists ({branch.id}), nothing to do")
    db.close()
    raise SystemExit(0)

# ═══════════════════════════════════════════════════════════════
# Branch + messaging settings
# ═══════════════════════════════════════════════════════════════
branch = Branch(name="Dinhata", phone="03581234567")
db.add(branch)
db.flush()

db.add(GymSettings(
    branch_id=branch.id,
    gym_name="Pro Plus Fitness",
    whatsapp_enabled=True,
    whatsapp_auto_send={
        "expiring_2days": True,
        "expiring_today": True,
        "expired_reminder": True,
        "expiring_days_before": 2,
        "expired_days_after": 7,
    },
))

# ═══════════════════════════════════════════════════════════════
# Members: (name, phone, days from today, status)
# ═══════════════════════════════════════════════════════════════
rows = [
    ("Aarav Sharma", "09876543210", 2, "active"),
    ("Diya Sen", "9876500011", 0, "active"),
    ("Kabir Roy", "+91 98765 00022", -7, "expired"),
    ("Meera Das", "9876500033", 30, "active"),
]
for name, phone, offset, status in rows:
    member = Member(name=name, phone=phone, branch_id=branch.id)
    db.add(member)
    db.flush()
    end = today + timedelta(days=offset)
    db.add(Subscription(
        member_id=member.id,
        start_date=end - timedelta(days=30),
        end_date=end,
        status=status,
        branch_id=branch.id,
    ))

db.commit()
print(f"✓ Seeded branch {branch.id} with {len(rows)} members")
db.close()
