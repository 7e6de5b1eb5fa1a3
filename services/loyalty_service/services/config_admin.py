"""Commission policy management (admin)."""

import uuid
from typing import Any, Optional

from libs.common.datetime_utils import utc_now
from libs.common.errors import NotFoundError, PolicyViolation, ValidationError
from libs.common.logging import get_logger
from services.loyalty_service.models import (
    AppliesTo,
    Commission,
    CommissionConfig,
    CommissionValueType,
    User,
    UserCommissionConfig,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


REQUIRED_FIELDS = (
    "name",
    "first_payment_type",
    "first_payment_value",
    "recurring_payment_type",
    "recurring_payment_value",
    "applies_to",
    "active",
    "min_payout_amount",
)


def _check_config(config: CommissionConfig, fields) -> None:
    missing = [
        field
        for field in REQUIRED_FIELDS
        if field in fields and getattr(config, field) is None
    ]
    if missing:
        raise ValidationError(
            "Commission config fields cannot be null", details={"fields": missing}
        )
    for kind in ("first_payment", "recurring_payment"):
        if (
            getattr(config, f"{kind}_type") == CommissionValueType.PERCENTAGE
            and getattr(config, f"{kind}_value") is not None
            and getattr(config, f"{kind}_value") > 100
        ):
            raise ValidationError(f"{kind}_value cannot exceed 100 percent")
    if config.valid_from and config.valid_until and config.valid_until < config.valid_from:
        raise ValidationError("valid_until must not be before valid_from")


async def get_config(db: AsyncSession, *, config_id: uuid.UUID) -> CommissionConfig:
    config = await db.get(CommissionConfig, config_id)
    if not config:
        raise NotFoundError(f"Commission config {config_id} not found")
    return config


async def list_configs(
    db: AsyncSession,
    *,
    active: Optional[bool] = None,
    applies_to: Optional[AppliesTo] = None,
) -> list[CommissionConfig]:
    query = select(CommissionConfig)
    if active is not None:
        query = query.where(CommissionConfig.active.is_(active))
    if applies_to is not None:
        query = query.where(CommissionConfig.applies_to == applies_to)
    result = await db.execute(query.order_by(CommissionConfig.created_at.desc()))
    return list(result.scalars().all())


async def create_config(db: AsyncSession, **fields: Any) -> CommissionConfig:
    config = CommissionConfig(**fields)
    _check_config(config, fields)
    db.add(config)
    await db.flush()
    logger.info(
        "Created commission config %s (%s, applies_to=%s)",
        config.id,
        config.name,
        config.applies_to.value,
    )
    return config


async def update_config(
    db: AsyncSession, *, config_id: uuid.UUID, changes: dict[str, Any]
) -> CommissionConfig:
    config = await get_config(db, config_id=config_id)
    for field, value in changes.items():
        setattr(config, field, value)
    _check_config(config, changes)
    config.updated_at = utc_now()
    await db.flush()
    logger.info("Updated commission config %s: %s", config_id, sorted(changes))
    return config


async def delete_config(db: AsyncSession, *, config_id: uuid.UUID) -> None:
    """Delete an unused policy. Policies with commissions must be deactivated."""
    config = await get_config(db, config_id=config_id)
    used = await db.scalar(
        select(func.count()).where(Commission.config_id == config_id)
    )
    if used:
        raise PolicyViolation(
            "Commission config has recorded commissions; deactivate it instead",
            details={"commissions": used},
        )

    bindings = await db.execute(
        select(UserCommissionConfig).where(
            UserCommissionConfig.commission_config_id == config_id
        )
    )
    for binding in bindings.scalars().all():
        await db.delete(binding)
    await db.delete(config)
    await db.flush()
    logger.info("Deleted commission config %s", config_id)


async def assign_config_to_user(
    db: AsyncSession, *, user_id: uuid.UUID, config_id: uuid.UUID
) -> UserCommissionConfig:
    """Bind a policy to a referrer, replacing any previous binding."""
    if not await db.get(User, user_id):
        raise NotFoundError(f"User {user_id} not found")
    await get_config(db, config_id=config_id)

    binding = await db.scalar(
        select(UserCommissionConfig).where(UserCommissionConfig.user_id == user_id)
    )
    if binding:
        binding.commission_config_id = config_id
        binding.assigned_at = utc_now()
    else:
        binding = UserCommissionConfig(user_id=user_id, commission_config_id=config_id)
        db.add(binding)
    await db.flush()
    logger.info("Assigned commission config %s to user %s", config_id, user_id)
    return binding
