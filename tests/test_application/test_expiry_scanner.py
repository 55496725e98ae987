"""
Tests for the eligibility scanner.
"""
from datetime import date

import pytest

from app.application.expiry_scanner import ExpiryScanner, EligibilityCapExceeded

TODAY = date(2026, 3, 10)


def test_three_sets(db_session, make_branch, make_member):
    branch = make_branch()
    soon = make_member(branch, "Soon", days=2)
    today = make_member(branch, "Today", days=0)
    expired = make_member(branch, "Gone", days=-3, status="expired")
    make_member(branch, "Later", days=30)

    snap = ExpiryScanner(db_session).scan(TODAY, {2}, 7)

    assert [r.member_id for r in snap.expiring_soon] == [soon.id]
    assert [r.member_id for r in snap.expiring_today] == [today.id]
    assert [r.member_id for r in snap.recently_expired] == [expired.id]


def test_expired_status_excluded_from_expiring(db_session, make_branch, make_member):
    branch = make_branch()
    make_member(branch, "Flagged", days=0, status="expired")
    snap = ExpiryScanner(db_session).scan(TODAY, {2}, 7)
    assert snap.expiring_today == []


def test_expired_lookback_bounds(db_session, make_branch, make_member):
    branch = make_branch()
    inside = make_member(branch, "Seven", days=-7, status="expired")
    make_member(branch, "Eight", days=-8, status="expired")
    make_member(branch, "TodayExpired", days=0, status="expired")

    snap = ExpiryScanner(db_session).scan(TODAY, {2}, 7)
    assert [r.member_id for r in snap.recently_expired] == [inside.id]


def test_multiple_windows(db_session, make_branch, make_member):
    branch = make_branch()
    two = make_member(branch, "Two", days=2)
    three = make_member(branch, "Three", days=3)

    snap = ExpiryScanner(db_session).scan(TODAY, {3, 2}, 7)
    assert [r.member_id for r in snap.expiring_soon] == [two.id, three.id]


def test_effective_branch_prefers_subscription(db_session, make_branch, make_member):
    home = make_branch("Home")
    other = make_branch("Other")
    a = make_member(home, "A", days=0, sub_branch=other)
    b = make_member(home, "B", days=0)

    rows = {r.member_id: r for r in ExpiryScanner(db_session).expiring_on(TODAY)}
    assert rows[a.id].branch_id == other.id
    assert rows[b.id].branch_id == home.id


def test_member_with_two_subscriptions_once(db_session, make_branch, make_member):
    import uuid
    from app.infrastructure.db.models import Subscription

    branch = make_branch()
    member = make_member(branch, "Twice", days=0)
    db_session.add(Subscription(
        id=uuid.uuid4(), member_id=member.id, start_date=TODAY, end_date=TODAY, status="active",
    ))
    db_session.commit()

    assert len(ExpiryScanner(db_session).expiring_on(TODAY)) == 1


def test_safety_cap(db_session, make_branch, make_member):
    branch = make_branch()
    for i in range(3):
        make_member(branch, f"M{i}", phone=f"98765000{i:02d}", days=0)

    with pytest.raises(EligibilityCapExceeded):
        ExpiryScanner(db_session, max_rows=2).expiring_on(TODAY)

    assert len(ExpiryScanner(db_session, max_rows=3).expiring_on(TODAY)) == 3
