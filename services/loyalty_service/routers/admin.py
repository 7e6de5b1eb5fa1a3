"""Admin loyalty management endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from libs.db.unit_of_work import unit_of_work
from services.loyalty_service.models import AppliesTo, PayoutStatus
from services.loyalty_service.schemas import (
    ActivationResponse,
    AssignConfigRequest,
    CommissionConfigCreate,
    CommissionConfigResponse,
    CommissionConfigUpdate,
    CommissionResponse,
    ExpireResponse,
    LedgerEntryResponse,
    PayoutListResponse,
    PayoutRejectRequest,
    PayoutRequestResponse,
    PurchaseRequest,
    RedemptionRequest,
    RenewResponse,
    UserConfigResponse,
)
from services.loyalty_service.services.config_admin import (
    assign_config_to_user,
    create_config,
    delete_config,
    get_config,
    list_configs,
    update_config,
)
from services.loyalty_service.services.ledger_ops import (
    award_purchase_points,
    expire_due,
    record_redemption,
    renew_all,
)
from services.loyalty_service.services.payout_service import (
    approve_payout,
    get_payout_commissions,
    list_payout_requests,
    reject_payout,
)
from services.loyalty_service.services.referral_service import activate_member
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
router = APIRouter(prefix="/admin/loyalty", tags=["admin-loyalty"])


# ---------------------------------------------------------------------------
# Commission configs
# ---------------------------------------------------------------------------


@router.get("/commission-configs", response_model=list[CommissionConfigResponse])
async def admin_list_configs(
    active: Optional[bool] = None,
    applies_to: Optional[AppliesTo] = None,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    configs = await list_configs(db, active=active, applies_to=applies_to)
    return [CommissionConfigResponse.model_validate(c) for c in configs]


@router.post(
    "/commission-configs",
    response_model=CommissionConfigResponse,
    status_code=status.HTTP_201_CREATED,
)
async def admin_create_config(
    body: CommissionConfigCreate,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    async with unit_of_work(db):
        config = await create_config(db, **body.model_dump())
    return CommissionConfigResponse.model_validate(config)


@router.get("/commission-configs/{config_id}", response_model=CommissionConfigResponse)
async def admin_get_config(
    config_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return CommissionConfigResponse.model_validate(
        await get_config(db, config_id=config_id)
    )


@router.patch("/commission-configs/{config_id}", response_model=CommissionConfigResponse)
async def admin_update_config(
    config_id: uuid.UUID,
    body: CommissionConfigUpdate,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    async with unit_of_work(db):
        config = await update_config(
            db, config_id=config_id, changes=body.model_dump(exclude_unset=True)
        )
    return CommissionConfigResponse.model_validate(config)


@router.delete("/commission-configs/{config_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete_config(
    config_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    async with unit_of_work(db):
        await delete_config(db, config_id=config_id)


@router.put("/users/{user_id}/commission-config", response_model=UserConfigResponse)
async def admin_assign_config(
    user_id: uuid.UUID,
    body: AssignConfigRequest,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    async with unit_of_work(db):
        binding = await assign_config_to_user(
            db, user_id=user_id, config_id=body.commission_config_id
        )
    return UserConfigResponse.model_validate(binding)


# ---------------------------------------------------------------------------
# Members & points
# ---------------------------------------------------------------------------


@router.post("/users/{user_id}/activate", response_model=ActivationResponse)
async def admin_activate_member(
    user_id: uuid.UUID,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Manual activation for payments settled outside the gateway."""
    async with unit_of_work(db):
        result = await activate_member(db, user_id=user_id)
    logger.info("Member %s manually activated by %s", user_id, admin.user_id)
    return ActivationResponse(
        user_id=user_id,
        activated=result.activated,
        referral_converted=result.conversion is not None,
        referrer_points=result.conversion.referrer_points if result.conversion else None,
        referred_points=result.conversion.referred_points if result.conversion else None,
    )


@router.post("/users/{user_id}/points/renew", response_model=RenewResponse)
async def admin_renew_points(
    user_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    async with unit_of_work(db):
        renewed = await renew_all(db, user_id=user_id)
    return RenewResponse(user_id=user_id, renewed=renewed)


@router.post(
    "/users/{user_id}/purchases",
    response_model=LedgerEntryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def admin_record_purchase(
    user_id: uuid.UUID,
    body: PurchaseRequest,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    async with unit_of_work(db):
        entry = await award_purchase_points(
            db,
            user_id=user_id,
            purchase_value=body.purchase_value,
            partner_id=body.partner_id,
        )
    return LedgerEntryResponse.model_validate(entry)


@router.post(
    "/users/{user_id}/redemptions",
    response_model=LedgerEntryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def admin_record_redemption(
    user_id: uuid.UUID,
    body: RedemptionRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    async with unit_of_work(db):
        entry = await record_redemption(
            db,
            user_id=user_id,
            points_spent=body.points_spent,
            redemption_code=body.redemption_code,
            approved_by=admin.user_id,
        )
    return LedgerEntryResponse.model_validate(entry)


@router.post("/points/expire", response_model=ExpireResponse)
async def admin_expire_points(
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    async with unit_of_work(db):
        count = await expire_due(db)
    return ExpireResponse(expired=count)


# ---------------------------------------------------------------------------
# Payouts
# ---------------------------------------------------------------------------


@router.get("/payouts", response_model=PayoutListResponse)
async def admin_list_payouts(
    status_filter: Optional[PayoutStatus] = Query(None, alias="status"),
    user_id: Optional[uuid.UUID] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    items, total = await list_payout_requests(
        db, user_id=user_id, status=status_filter, skip=skip, limit=limit
    )
    return PayoutListResponse(
        items=[PayoutRequestResponse.model_validate(p) for p in items],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/payouts/{payout_id}/commissions", response_model=list[CommissionResponse])
async def admin_payout_commissions(
    payout_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    commissions = await get_payout_commissions(db, payout_id=payout_id)
    return [CommissionResponse.model_validate(c) for c in commissions]


@router.post("/payouts/{payout_id}/approve", response_model=PayoutRequestResponse)
async def admin_approve_payout(
    payout_id: uuid.UUID,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    async with unit_of_work(db):
        payout = await approve_payout(db, payout_id=payout_id, processed_by=admin.user_id)
    return PayoutRequestResponse.model_validate(payout)


@router.post("/payouts/{payout_id}/reject", response_model=PayoutRequestResponse)
async def admin_reject_payout(
    payout_id: uuid.UUID,
    body: PayoutRejectRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    async with unit_of_work(db):
        payout = await reject_payout(
            db, payout_id=payout_id, processed_by=admin.user_id, reason=body.reason
        )
    return PayoutRequestResponse.model_validate(payout)
