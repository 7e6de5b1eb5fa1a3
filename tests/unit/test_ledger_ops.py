"""Unit tests for ledger_ops: grants, balance, expiry and renewal.

Tests call ledger_ops functions directly with the db_session fixture.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from libs.common.datetime_utils import add_months, utc_now
from libs.common.errors import (
    InsufficientPoints,
    InvalidAmount,
    NotFoundError,
    PolicyViolation,
    ValidationError,
)
from services.loyalty_service.models import LedgerKind, UserStatus
from services.loyalty_service.services.ledger_ops import (
    award_points,
    award_purchase_points,
    expire_due,
    expiring_total,
    get_balance,
    get_history,
    list_expiring_within,
    record_redemption,
    renew_all,
)
from tests.factories import LedgerEntryFactory, UserFactory

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _make_user(db, **overrides):
    user = UserFactory.create(**overrides)
    db.add(user)
    await db.commit()
    return user


async def _add_entries(db, *entries):
    db.add_all(entries)
    await db.commit()
    return entries


# ---------------------------------------------------------------------------
# award_points
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_award_rejects_zero_points(db_session):
    user = await _make_user(db_session)
    with pytest.raises(InvalidAmount):
        await award_points(
            db_session, user_id=user.id, points=0, kind=LedgerKind.BONUS
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_award_enforces_sign_per_kind(db_session):
    user = await _make_user(db_session)
    with pytest.raises(InvalidAmount):
        await award_points(
            db_session, user_id=user.id, points=-10, kind=LedgerKind.PURCHASE
        )
    with pytest.raises(InvalidAmount):
        await award_points(
            db_session, user_id=user.id, points=10, kind=LedgerKind.REDEMPTION
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_award_unknown_user(db_session):
    import uuid

    with pytest.raises(NotFoundError):
        await award_points(
            db_session, user_id=uuid.uuid4(), points=10, kind=LedgerKind.BONUS
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_award_defaults_to_twelve_month_expiry(db_session):
    user = await _make_user(db_session)
    earned = utc_now()

    entry = await award_points(
        db_session,
        user_id=user.id,
        points=150,
        kind=LedgerKind.BONUS,
        earned_at=earned,
    )
    await db_session.commit()

    assert entry.points == 150
    assert entry.expires_at == add_months(earned, 12)
    assert entry.renewable is False
    assert await get_balance(db_session, user_id=user.id) == 150


# ---------------------------------------------------------------------------
# get_balance
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_balance_counts_only_live_entries(db_session):
    user = await _make_user(db_session)
    now = utc_now()
    await _add_entries(
        db_session,
        LedgerEntryFactory.create(user_id=user.id, points=100),
        LedgerEntryFactory.create(user_id=user.id, points=50, expired=True),
        LedgerEntryFactory.create(
            user_id=user.id, points=30, expires_at=now - timedelta(minutes=1)
        ),
        LedgerEntryFactory.create(user_id=user.id, points=20, redeemed=True),
        LedgerEntryFactory.create(
            user_id=user.id,
            points=-40,
            kind=LedgerKind.REDEMPTION,
            expires_at=now + timedelta(days=365 * 100),
        ),
    )

    assert await get_balance(db_session, user_id=user.id, now=now) == 60


@pytest.mark.asyncio
@pytest.mark.unit
async def test_balance_for_user_without_entries_is_zero(db_session):
    user = await _make_user(db_session)
    assert await get_balance(db_session, user_id=user.id) == 0


# ---------------------------------------------------------------------------
# renew_all
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_renew_all_extends_only_renewable_live_entries(db_session):
    user = await _make_user(db_session)
    now = utc_now()
    renewable, fixed, lapsed = await _add_entries(
        db_session,
        LedgerEntryFactory.create(
            user_id=user.id, renewable=True, expires_at=now + timedelta(days=10)
        ),
        LedgerEntryFactory.create(
            user_id=user.id, renewable=False, expires_at=now + timedelta(days=10)
        ),
        LedgerEntryFactory.create(
            user_id=user.id, renewable=True, expires_at=now - timedelta(days=1)
        ),
    )

    renewed = await renew_all(db_session, user_id=user.id, now=now)
    await db_session.commit()

    assert renewed == 1
    for entry in (renewable, fixed, lapsed):
        await db_session.refresh(entry)
    assert renewable.expires_at == add_months(now, 12)
    assert renewable.renewed_at == now
    assert fixed.expires_at == now + timedelta(days=10)
    assert lapsed.expires_at == now - timedelta(days=1)
    assert lapsed.renewed_at is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_renew_all_is_idempotent_for_same_instant(db_session):
    user = await _make_user(db_session)
    now = utc_now()
    (entry,) = await _add_entries(
        db_session,
        LedgerEntryFactory.create(
            user_id=user.id, renewable=True, expires_at=now + timedelta(days=3)
        ),
    )

    await renew_all(db_session, user_id=user.id, now=now)
    await renew_all(db_session, user_id=user.id, now=now)
    await db_session.commit()
    await db_session.refresh(entry)

    assert entry.expires_at == add_months(now, 12)
    assert await get_balance(db_session, user_id=user.id, now=now) == 100


# ---------------------------------------------------------------------------
# list_expiring_within / expiring_total
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_expiring_within_window_ordered_soonest_first(db_session):
    user = await _make_user(db_session)
    now = utc_now()
    await _add_entries(
        db_session,
        LedgerEntryFactory.create(
            user_id=user.id, points=20, expires_at=now + timedelta(days=20)
        ),
        LedgerEntryFactory.create(
            user_id=user.id, points=5, expires_at=now + timedelta(days=5)
        ),
        LedgerEntryFactory.create(
            user_id=user.id, points=40, expires_at=now + timedelta(days=40)
        ),
        LedgerEntryFactory.create(
            user_id=user.id, points=7, expires_at=now + timedelta(days=2), expired=True
        ),
    )

    entries = [
        e
        async for e in list_expiring_within(
            db_session, user_id=user.id, days=30, now=now
        )
    ]
    assert [e.points for e in entries] == [5, 20]
    assert await expiring_total(db_session, user_id=user.id, days=30, now=now) == 25


@pytest.mark.asyncio
@pytest.mark.unit
async def test_expiring_listing_pages_and_restarts(db_session):
    user = await _make_user(db_session)
    now = utc_now()
    await _add_entries(
        db_session,
        *[
            LedgerEntryFactory.create(
                user_id=user.id, points=i + 1, expires_at=now + timedelta(days=i + 1)
            )
            for i in range(5)
        ],
    )

    first = [
        e.points
        async for e in list_expiring_within(
            db_session, user_id=user.id, days=30, now=now, page_size=2
        )
    ]
    second = [
        e.points
        async for e in list_expiring_within(
            db_session, user_id=user.id, days=30, now=now, page_size=2
        )
    ]
    assert first == [1, 2, 3, 4, 5]
    assert second == first


# ---------------------------------------------------------------------------
# expire_due
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_expire_due_stamps_flags_without_changing_balance(db_session):
    user = await _make_user(db_session)
    now = utc_now()
    live, due = await _add_entries(
        db_session,
        LedgerEntryFactory.create(user_id=user.id, points=80),
        LedgerEntryFactory.create(
            user_id=user.id, points=30, expires_at=now - timedelta(days=2)
        ),
    )
    before = await get_balance(db_session, user_id=user.id, now=now)

    count = await expire_due(db_session, user_id=user.id, now=now)
    await db_session.commit()
    await db_session.refresh(due)
    await db_session.refresh(live)

    assert count == 1
    assert due.expired is True
    assert live.expired is False
    assert await get_balance(db_session, user_id=user.id, now=now) == before == 80


# ---------------------------------------------------------------------------
# Purchases
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_purchase_awards_one_point_per_ten_and_renews(db_session):
    user = await _make_user(db_session)
    now = utc_now()
    (older,) = await _add_entries(
        db_session,
        LedgerEntryFactory.create(
            user_id=user.id, renewable=True, expires_at=now + timedelta(days=15)
        ),
    )

    entry = await award_purchase_points(
        db_session, user_id=user.id, purchase_value=Decimal("95.50"), now=now
    )
    await db_session.commit()
    await db_session.refresh(older)

    assert entry.points == 9
    assert entry.kind == LedgerKind.PURCHASE
    assert entry.renewable is True
    assert older.expires_at == add_months(now, 12)
    assert await get_balance(db_session, user_id=user.id, now=now) == 109


@pytest.mark.asyncio
@pytest.mark.unit
async def test_purchase_rules(db_session):
    inactive = await _make_user(db_session, status=UserStatus.INACTIVE)
    active = await _make_user(db_session)

    with pytest.raises(PolicyViolation):
        await award_purchase_points(
            db_session, user_id=inactive.id, purchase_value=Decimal("100")
        )
    with pytest.raises(ValidationError):
        await award_purchase_points(
            db_session, user_id=active.id, purchase_value=Decimal("9.99")
        )


# ---------------------------------------------------------------------------
# Redemptions
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_redemption_deducts_with_far_future_expiry(db_session):
    user = await _make_user(db_session)
    await _add_entries(db_session, LedgerEntryFactory.create(user_id=user.id, points=300))
    now = utc_now()

    entry = await record_redemption(
        db_session, user_id=user.id, points_spent=120, redemption_code="RWD-1", now=now
    )
    await db_session.commit()

    assert entry.points == -120
    assert entry.kind == LedgerKind.REDEMPTION
    assert entry.expires_at >= now + timedelta(days=365 * 99)
    assert await get_balance(db_session, user_id=user.id) == 180


@pytest.mark.asyncio
@pytest.mark.unit
async def test_redemption_requires_sufficient_balance(db_session):
    user = await _make_user(db_session)
    await _add_entries(db_session, LedgerEntryFactory.create(user_id=user.id, points=50))

    with pytest.raises(InsufficientPoints):
        await record_redemption(db_session, user_id=user.id, points_spent=51)


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_history_newest_first_with_total(db_session):
    user = await _make_user(db_session)
    now = utc_now()
    await _add_entries(
        db_session,
        *[
            LedgerEntryFactory.create(
                user_id=user.id, points=i + 1, earned_at=now - timedelta(days=i)
            )
            for i in range(4)
        ],
    )

    entries, total = await get_history(db_session, user_id=user.id, skip=1, limit=2)
    assert total == 4
    assert [e.points for e in entries] == [2, 3]
