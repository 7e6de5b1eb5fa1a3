"""Integration tests for loyalty_service admin endpoints."""

import uuid
from decimal import Decimal

import pytest
from services.loyalty_service.models import (
    CommissionStatus,
    CommissionValueType,
    UserStatus,
)
from tests.factories import (
    CommissionConfigFactory,
    CommissionFactory,
    GatewayPaymentFactory,
    LedgerEntryFactory,
    UserFactory,
)

CONFIG_BODY = {
    "name": "Partners 2026",
    "first_payment_type": "fixed",
    "first_payment_value": "30.00",
    "recurring_payment_type": "percentage",
    "recurring_payment_value": "15.00",
    "recurring_limit": 6,
    "applies_to": "partner",
    "min_payout_amount": "100.00",
}


@pytest.fixture
def as_admin(act_as):
    return act_as(uuid.uuid4(), role="admin")


async def _seed(db, *objects):
    db.add_all(objects)
    await db.commit()
    return objects


# ---------------------------------------------------------------------------
# Access
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_routes_reject_members(loyalty_client, act_as):
    act_as(uuid.uuid4())
    response = await loyalty_client.get("/admin/loyalty/commission-configs")
    assert response.status_code == 403


# ---------------------------------------------------------------------------
# Commission configs
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_config_crud(loyalty_client, as_admin):
    """Create, read, patch, list and delete a commission config."""
    created = await loyalty_client.post(
        "/admin/loyalty/commission-configs", json=CONFIG_BODY
    )
    assert created.status_code == 201, created.text
    config_id = created.json()["id"]
    assert created.json()["applies_to"] == "partner"

    fetched = await loyalty_client.get(f"/admin/loyalty/commission-configs/{config_id}")
    assert fetched.status_code == 200
    assert Decimal(fetched.json()["first_payment_value"]) == Decimal("30.00")

    patched = await loyalty_client.patch(
        f"/admin/loyalty/commission-configs/{config_id}", json={"active": False}
    )
    assert patched.status_code == 200
    assert patched.json()["active"] is False
    assert patched.json()["name"] == "Partners 2026"

    listed = await loyalty_client.get(
        "/admin/loyalty/commission-configs?active=false"
    )
    assert [c["id"] for c in listed.json()] == [config_id]

    deleted = await loyalty_client.delete(
        f"/admin/loyalty/commission-configs/{config_id}"
    )
    assert deleted.status_code == 204
    missing = await loyalty_client.get(f"/admin/loyalty/commission-configs/{config_id}")
    assert missing.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_config_rejects_percentage_over_hundred(loyalty_client, as_admin):
    body = {**CONFIG_BODY, "recurring_payment_value": "120.00"}
    response = await loyalty_client.post("/admin/loyalty/commission-configs", json=body)
    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_config_update_rejects_percentage_over_hundred(
    loyalty_client, db_session, as_admin
):
    """PATCH checks the merged config, not just the fields sent."""
    config = CommissionConfigFactory.create(
        first_payment_type=CommissionValueType.PERCENTAGE,
        first_payment_value=Decimal("10.00"),
    )
    await _seed(db_session, config)
    config_id = config.id

    response = await loyalty_client.patch(
        f"/admin/loyalty/commission-configs/{config_id}",
        json={"first_payment_value": "250.00"},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"

    switched = await loyalty_client.patch(
        f"/admin/loyalty/commission-configs/{config_id}",
        json={"first_payment_type": "fixed", "first_payment_value": "250.00"},
    )
    assert switched.status_code == 200, switched.text
    assert Decimal(switched.json()["first_payment_value"]) == Decimal("250.00")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_config_update_rejects_null_required_field(
    loyalty_client, db_session, as_admin
):
    config = CommissionConfigFactory.create(name="Members 2026")
    await _seed(db_session, config)
    config_id = config.id

    response = await loyalty_client.patch(
        f"/admin/loyalty/commission-configs/{config_id}", json={"name": None}
    )
    assert response.status_code == 400
    assert response.json()["details"] == {"fields": ["name"]}

    fetched = await loyalty_client.get(f"/admin/loyalty/commission-configs/{config_id}")
    assert fetched.json()["name"] == "Members 2026"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_config_with_commissions_cannot_be_deleted(
    loyalty_client, db_session, as_admin
):
    referrer = UserFactory.create()
    referred = UserFactory.create(referred_by=referrer.id)
    config = CommissionConfigFactory.create()
    payment = GatewayPaymentFactory.create(user_id=referred.id, status="confirmed")
    await _seed(db_session, referrer, referred, config, payment)
    await _seed(
        db_session,
        CommissionFactory.create(
            referrer_id=referrer.id,
            referred_id=referred.id,
            payment_id=payment.id,
            config_id=config.id,
        ),
    )

    response = await loyalty_client.delete(
        f"/admin/loyalty/commission-configs/{config.id}"
    )
    assert response.status_code == 422
    assert response.json()["code"] == "policy_violation"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_assign_config_to_user(loyalty_client, db_session, as_admin):
    """PUT /admin/loyalty/users/{id}/commission-config: rebinding replaces."""
    user = UserFactory.create()
    first = CommissionConfigFactory.create(name="first")
    second = CommissionConfigFactory.create(name="second")
    await _seed(db_session, user, first, second)

    for config in (first, second):
        response = await loyalty_client.put(
            f"/admin/loyalty/users/{user.id}/commission-config",
            json={"commission_config_id": str(config.id)},
        )
        assert response.status_code == 200, response.text

    assert response.json()["commission_config_id"] == str(second.id)


# ---------------------------------------------------------------------------
# Members & points
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_manual_activation(loyalty_client, db_session, as_admin):
    user = UserFactory.create(status=UserStatus.INACTIVE)
    await _seed(db_session, user)

    response = await loyalty_client.post(f"/admin/loyalty/users/{user.id}/activate")

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["activated"] is True
    assert data["referral_converted"] is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_purchase_and_redemption(loyalty_client, db_session, as_admin):
    user = UserFactory.create()
    await _seed(db_session, user, LedgerEntryFactory.create(user_id=user.id, points=50))

    purchase = await loyalty_client.post(
        f"/admin/loyalty/users/{user.id}/purchases", json={"purchase_value": "120.00"}
    )
    assert purchase.status_code == 201, purchase.text
    assert purchase.json()["points"] == 12
    assert purchase.json()["kind"] == "purchase"

    redemption = await loyalty_client.post(
        f"/admin/loyalty/users/{user.id}/redemptions",
        json={"points_spent": 60, "redemption_code": "CINEMA-2"},
    )
    assert redemption.status_code == 201, redemption.text
    assert redemption.json()["points"] == -60

    overdraw = await loyalty_client.post(
        f"/admin/loyalty/users/{user.id}/redemptions", json={"points_spent": 10}
    )
    assert overdraw.status_code == 422
    assert overdraw.json()["code"] == "insufficient_points"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_renew_and_expire(loyalty_client, db_session, as_admin):
    from datetime import timedelta

    from libs.common.datetime_utils import utc_now

    user = UserFactory.create()
    now = utc_now()
    await _seed(
        db_session,
        user,
        LedgerEntryFactory.create(
            user_id=user.id, renewable=True, expires_at=now + timedelta(days=2)
        ),
        LedgerEntryFactory.create(user_id=user.id, expires_at=now - timedelta(days=2)),
    )

    renewed = await loyalty_client.post(f"/admin/loyalty/users/{user.id}/points/renew")
    assert renewed.json() == {"user_id": str(user.id), "renewed": 1}

    expired = await loyalty_client.post("/admin/loyalty/points/expire")
    assert expired.json() == {"expired": 1}


# ---------------------------------------------------------------------------
# Payouts
# ---------------------------------------------------------------------------


async def _open_payout(client, db, act_as, values=("40.00", "20.00")):
    referrer = UserFactory.create(payout_info={"method": "pix", "key": "k"})
    referred = UserFactory.create(referred_by=referrer.id)
    config = CommissionConfigFactory.create()
    await _seed(db, referrer, referred, config)
    for value in values:
        payment = GatewayPaymentFactory.create(user_id=referred.id, status="confirmed")
        await _seed(
            db,
            payment,
            CommissionFactory.create(
                referrer_id=referrer.id,
                referred_id=referred.id,
                payment_id=payment.id,
                config_id=config.id,
                value=Decimal(value),
            ),
        )

    act_as(referrer.id)
    created = await client.post("/loyalty/payouts")
    assert created.status_code == 201, created.text
    act_as(uuid.uuid4(), role="admin")
    return created.json()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_approve_payout(loyalty_client, db_session, act_as):
    payout = await _open_payout(loyalty_client, db_session, act_as)

    pending = await loyalty_client.get("/admin/loyalty/payouts?status=pending")
    assert pending.json()["total"] == 1

    approved = await loyalty_client.post(
        f"/admin/loyalty/payouts/{payout['id']}/approve"
    )
    assert approved.status_code == 200, approved.text
    assert approved.json()["status"] == "approved"

    commissions = await loyalty_client.get(
        f"/admin/loyalty/payouts/{payout['id']}/commissions"
    )
    assert {c["status"] for c in commissions.json()} == {CommissionStatus.PAID.value}
    assert sum(Decimal(c["value"]) for c in commissions.json()) == Decimal(
        payout["request_amount"]
    )

    reject = await loyalty_client.post(
        f"/admin/loyalty/payouts/{payout['id']}/reject", json={"reason": "late"}
    )
    assert reject.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_reject_payout(loyalty_client, db_session, act_as):
    payout = await _open_payout(loyalty_client, db_session, act_as)

    rejected = await loyalty_client.post(
        f"/admin/loyalty/payouts/{payout['id']}/reject",
        json={"reason": "PIX key does not match holder"},
    )
    assert rejected.status_code == 200, rejected.text
    assert rejected.json()["status"] == "rejected"
    assert rejected.json()["rejection_reason"] == "PIX key does not match holder"

    commissions = await loyalty_client.get(
        f"/admin/loyalty/payouts/{payout['id']}/commissions"
    )
    assert commissions.json() == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_approve_unknown_payout(loyalty_client, as_admin):
    response = await loyalty_client.post(f"/admin/loyalty/payouts/{uuid.uuid4()}/approve")
    assert response.status_code == 404
