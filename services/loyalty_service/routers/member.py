"""Member-facing loyalty endpoints."""

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import current_user_uuid, get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from libs.db.unit_of_work import unit_of_work
from services.loyalty_service.schemas import (
    BalanceResponse,
    CommissionSummaryResponse,
    ExpiringResponse,
    HistoryResponse,
    LedgerEntryResponse,
    PayoutListResponse,
    PayoutRequestResponse,
    ReferralCodeResponse,
    ReferralStatsResponse,
)
from services.loyalty_service.services.commission_engine import (
    get_commission_summary,
)
from services.loyalty_service.services.ledger_ops import (
    expiring_total,
    get_balance,
    get_history,
    list_expiring_within,
)
from services.loyalty_service.services.payout_service import (
    list_payout_requests,
    request_payout,
)
from services.loyalty_service.services.referral_service import (
    ensure_referral_code,
    get_referral_stats,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/loyalty", tags=["loyalty"])


# ---------------------------------------------------------------------------
# Points
# ---------------------------------------------------------------------------


@router.get("/points/balance", response_model=BalanceResponse)
async def points_balance(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    user_id = current_user_uuid(current_user)
    return BalanceResponse(
        user_id=user_id, balance=await get_balance(db, user_id=user_id)
    )


@router.get("/points/history", response_model=HistoryResponse)
async def points_history(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    entries, total = await get_history(
        db, user_id=current_user_uuid(current_user), skip=skip, limit=limit
    )
    return HistoryResponse(
        entries=[LedgerEntryResponse.model_validate(e) for e in entries],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/points/expiring", response_model=ExpiringResponse)
async def points_expiring(
    days: int = Query(30, ge=0, le=3650),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Points that lapse within ``days`` unless renewed."""
    user_id = current_user_uuid(current_user)
    entries = [
        LedgerEntryResponse.model_validate(entry)
        async for entry in list_expiring_within(db, user_id=user_id, days=days)
    ]
    return ExpiringResponse(
        user_id=user_id,
        days=days,
        total_points=await expiring_total(db, user_id=user_id, days=days),
        entries=entries,
    )


# ---------------------------------------------------------------------------
# Referrals & commissions
# ---------------------------------------------------------------------------


@router.get("/referrals/my-code", response_model=ReferralCodeResponse)
async def my_referral_code(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    user_id = current_user_uuid(current_user)
    async with unit_of_work(db):
        code = await ensure_referral_code(db, user_id=user_id)
    return ReferralCodeResponse(user_id=user_id, referral_code=code)


@router.get("/referrals/stats", response_model=ReferralStatsResponse)
async def my_referral_stats(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    stats = await get_referral_stats(db, user_id=current_user_uuid(current_user))
    return ReferralStatsResponse(**stats)


@router.get("/commissions/summary", response_model=CommissionSummaryResponse)
async def my_commission_summary(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    summary = await get_commission_summary(
        db, referrer_id=current_user_uuid(current_user)
    )
    return CommissionSummaryResponse(**summary)


# ---------------------------------------------------------------------------
# Payouts
# ---------------------------------------------------------------------------


@router.post(
    "/payouts",
    response_model=PayoutRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_payout_request(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Withdraw every pending, unclaimed commission."""
    async with unit_of_work(db):
        payout = await request_payout(db, user_id=current_user_uuid(current_user))
    return PayoutRequestResponse.model_validate(payout)


@router.get("/payouts", response_model=PayoutListResponse)
async def my_payout_requests(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    items, total = await list_payout_requests(
        db, user_id=current_user_uuid(current_user), skip=skip, limit=limit
    )
    return PayoutListResponse(
        items=[PayoutRequestResponse.model_validate(p) for p in items],
        total=total,
        skip=skip,
        limit=limit,
    )
