"""initial_loyalty_schema

Revision ID: 5f0c1d2e3a41
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "5f0c1d2e3a41"
down_revision = None
branch_labels = None
depends_on = None


def _enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name)


USER_TYPE = _enum("user_type_enum", "client", "partner", "ambassador", "admin")
USER_STATUS = _enum("user_status_enum", "active", "inactive", "blocked")
REFERRAL_LEVEL = _enum("referral_level_enum", "bronze", "silver", "gold", "diamond")
LEDGER_KIND = _enum("ledger_kind_enum", "purchase", "referral", "bonus", "redemption")
REFERRAL_STATUS = _enum("referral_status_enum", "pending", "converted")
VALUE_TYPE = _enum("commission_value_type_enum", "percentage", "fixed")
APPLIES_TO = _enum("commission_applies_to_enum", "all", "partner", "ambassador", "custom")
COMMISSION_TYPE = _enum("commission_type_enum", "first", "recurring")
COMMISSION_STATUS = _enum("commission_status_enum", "pending", "paid")
PAYOUT_STATUS = _enum("payout_request_status_enum", "pending", "approved", "rejected")

UUID = postgresql.UUID(as_uuid=True)
TIMESTAMP = sa.DateTime(timezone=True)
MONEY = sa.Numeric(12, 2)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("user_type", USER_TYPE, nullable=False),
        sa.Column("status", USER_STATUS, nullable=False),
        sa.Column("level", REFERRAL_LEVEL, nullable=False),
        sa.Column("total_referrals", sa.Integer(), nullable=False),
        sa.Column("referred_by", UUID, nullable=True),
        sa.Column("referral_code", sa.String(length=32), nullable=True),
        sa.Column("payout_info", sa.JSON(), nullable=True),
        sa.Column("last_payment_at", TIMESTAMP, nullable=True),
        sa.Column("created_at", TIMESTAMP, nullable=False),
        sa.Column("updated_at", TIMESTAMP, nullable=False),
        sa.ForeignKeyConstraint(
            ["referred_by"], ["users.id"],
            name="fk_users_referred_by_users", ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("referral_code", name="uq_users_referral_code"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_referred_by", "users", ["referred_by"])

    op.create_table(
        "commission_configs",
        sa.Column("id", UUID, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("first_payment_type", VALUE_TYPE, nullable=False),
        sa.Column("first_payment_value", MONEY, nullable=False),
        sa.Column("recurring_payment_type", VALUE_TYPE, nullable=False),
        sa.Column("recurring_payment_value", MONEY, nullable=False),
        sa.Column("recurring_limit", sa.Integer(), nullable=True),
        sa.Column("applies_to", APPLIES_TO, nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("valid_from", sa.Date(), nullable=True),
        sa.Column("valid_until", sa.Date(), nullable=True),
        sa.Column("min_payout_amount", MONEY, nullable=False),
        sa.Column("created_at", TIMESTAMP, nullable=False),
        sa.Column("updated_at", TIMESTAMP, nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_commission_configs"),
    )

    op.create_table(
        "asaas_payments",
        sa.Column("id", UUID, nullable=False),
        sa.Column("user_id", UUID, nullable=False),
        sa.Column("gateway_payment_id", sa.String(length=64), nullable=False),
        sa.Column("value", MONEY, nullable=False),
        sa.Column("net_value", MONEY, nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("billing_type", sa.String(length=32), nullable=True),
        sa.Column("installment_number", sa.Integer(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("payment_date", TIMESTAMP, nullable=True),
        sa.Column("webhook_received_at", TIMESTAMP, nullable=True),
        sa.Column("created_at", TIMESTAMP, nullable=False),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_asaas_payments_user_id_users"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_asaas_payments"),
    )
    op.create_index(
        "ix_asaas_payments_gateway_payment_id",
        "asaas_payments",
        ["gateway_payment_id"],
        unique=True,
    )
    op.create_index(
        "ix_asaas_payments_user_status_date",
        "asaas_payments",
        ["user_id", "status", "payment_date"],
    )

    op.create_table(
        "points_ledger",
        sa.Column("id", UUID, nullable=False),
        sa.Column("user_id", UUID, nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("kind", LEDGER_KIND, nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("earned_at", TIMESTAMP, nullable=False),
        sa.Column("expires_at", TIMESTAMP, nullable=False),
        sa.Column("renewable", sa.Boolean(), nullable=False),
        sa.Column("expired", sa.Boolean(), nullable=False),
        sa.Column("redeemed", sa.Boolean(), nullable=False),
        sa.Column("renewed_at", TIMESTAMP, nullable=True),
        sa.CheckConstraint("points <> 0", name="ck_points_ledger_points_non_zero"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_points_ledger_user_id_users"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_points_ledger"),
    )
    op.create_index(
        "ix_points_ledger_user_expiry", "points_ledger", ["user_id", "expires_at"]
    )

    op.create_table(
        "referrals",
        sa.Column("id", UUID, nullable=False),
        sa.Column("referrer_id", UUID, nullable=False),
        sa.Column("referred_id", UUID, nullable=False),
        sa.Column("status", REFERRAL_STATUS, nullable=False),
        sa.Column("conversion_date", TIMESTAMP, nullable=True),
        sa.Column("points_awarded", sa.Integer(), nullable=False),
        sa.Column("created_at", TIMESTAMP, nullable=False),
        sa.ForeignKeyConstraint(
            ["referrer_id"], ["users.id"], name="fk_referrals_referrer_id_users"
        ),
        sa.ForeignKeyConstraint(
            ["referred_id"], ["users.id"], name="fk_referrals_referred_id_users"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_referrals"),
        sa.UniqueConstraint("referred_id", name="uq_referrals_referred_id"),
    )
    op.create_index("ix_referrals_referrer_id", "referrals", ["referrer_id"])

    op.create_table(
        "user_commission_config",
        sa.Column("id", UUID, nullable=False),
        sa.Column("user_id", UUID, nullable=False),
        sa.Column("commission_config_id", UUID, nullable=False),
        sa.Column("assigned_at", TIMESTAMP, nullable=False),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_user_commission_config_user_id_users"
        ),
        sa.ForeignKeyConstraint(
            ["commission_config_id"],
            ["commission_configs.id"],
            name="fk_user_commission_config_commission_config_id_commission_configs",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_user_commission_config"),
        sa.UniqueConstraint("user_id", name="uq_user_commission_config_user_id"),
    )

    op.create_table(
        "payout_requests",
        sa.Column("id", UUID, nullable=False),
        sa.Column("user_id", UUID, nullable=False),
        sa.Column("request_amount", MONEY, nullable=False),
        sa.Column("payout_method", sa.JSON(), nullable=True),
        sa.Column("status", PAYOUT_STATUS, nullable=False),
        sa.Column("processed_by", sa.String(length=255), nullable=True),
        sa.Column("processed_at", TIMESTAMP, nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("created_at", TIMESTAMP, nullable=False),
        sa.Column("updated_at", TIMESTAMP, nullable=False),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_payout_requests_user_id_users"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_payout_requests"),
    )
    op.create_index("ix_payout_requests_user_id", "payout_requests", ["user_id"])

    op.create_table(
        "commissions",
        sa.Column("id", UUID, nullable=False),
        sa.Column("referrer_id", UUID, nullable=False),
        sa.Column("referred_id", UUID, nullable=False),
        sa.Column("payment_id", UUID, nullable=False),
        sa.Column("config_id", UUID, nullable=False),
        sa.Column("value", MONEY, nullable=False),
        sa.Column("commission_type", COMMISSION_TYPE, nullable=False),
        sa.Column("status", COMMISSION_STATUS, nullable=False),
        sa.Column("payout_request_id", UUID, nullable=True),
        sa.Column("paid_at", TIMESTAMP, nullable=True),
        sa.Column("created_at", TIMESTAMP, nullable=False),
        sa.CheckConstraint("value >= 0", name="ck_commissions_value_non_negative"),
        sa.ForeignKeyConstraint(
            ["referrer_id"], ["users.id"], name="fk_commissions_referrer_id_users"
        ),
        sa.ForeignKeyConstraint(
            ["referred_id"], ["users.id"], name="fk_commissions_referred_id_users"
        ),
        sa.ForeignKeyConstraint(
            ["payment_id"],
            ["asaas_payments.id"],
            name="fk_commissions_payment_id_asaas_payments",
        ),
        sa.ForeignKeyConstraint(
            ["config_id"],
            ["commission_configs.id"],
            name="fk_commissions_config_id_commission_configs",
        ),
        sa.ForeignKeyConstraint(
            ["payout_request_id"],
            ["payout_requests.id"],
            name="fk_commissions_payout_request_id_payout_requests",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_commissions"),
        sa.UniqueConstraint("payment_id", name="uq_commissions_payment_id"),
    )
    op.create_index("ix_commissions_referrer_id", "commissions", ["referrer_id"])
    op.create_index("ix_commissions_referred_id", "commissions", ["referred_id"])
    op.create_index(
        "ix_commissions_payout_request_id", "commissions", ["payout_request_id"]
    )


def downgrade() -> None:
    op.drop_table("commissions")
    op.drop_table("payout_requests")
    op.drop_table("user_commission_config")
    op.drop_table("referrals")
    op.drop_table("points_ledger")
    op.drop_table("asaas_payments")
    op.drop_table("commission_configs")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in (
        PAYOUT_STATUS,
        COMMISSION_STATUS,
        COMMISSION_TYPE,
        APPLIES_TO,
        VALUE_TYPE,
        REFERRAL_STATUS,
        LEDGER_KIND,
        REFERRAL_LEVEL,
        USER_STATUS,
        USER_TYPE,
    ):
        enum_type.drop(bind, checkfirst=True)
