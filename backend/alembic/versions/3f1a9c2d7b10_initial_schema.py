"""Initial schema: stock prices, holdings, classes, memberships

Revision ID: 3f1a9c2d7b10
Revises:
Create Date: 2026-09-28 10:12:41.518204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f1a9c2d7b10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "stock_prices",
        sa.Column("symbol", sa.String(length=20), nullable=False),
        sa.Column("company_name", sa.String(length=255), nullable=False),
        sa.Column("current_price", sa.Numeric(precision=14, scale=4), nullable=False),
        sa.Column("previous_close", sa.Numeric(precision=14, scale=4), nullable=True),
        sa.Column("day_change", sa.Numeric(precision=14, scale=4), nullable=True),
        sa.Column("day_change_percent", sa.Numeric(precision=10, scale=4), nullable=True),
        sa.Column("market_status", sa.String(length=20), nullable=True),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("symbol"),
    )

    op.create_table(
        "holdings",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("stock_symbol", sa.String(length=20), nullable=False),
        sa.Column("purchase_price", sa.Numeric(precision=14, scale=4), nullable=False),
        sa.Column("shares", sa.Integer(), nullable=False),
        sa.Column("initial_value", sa.Numeric(precision=16, scale=4), nullable=False),
        sa.Column("purchase_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
        sa.CheckConstraint("shares > 0", name="ck_holdings_shares_positive"),
        sa.CheckConstraint("purchase_price > 0", name="ck_holdings_purchase_price_positive"),
        sa.CheckConstraint("initial_value <= 100000", name="ck_holdings_initial_value_budget"),
    )
    op.create_index(op.f("ix_holdings_stock_symbol"), "holdings", ["stock_symbol"], unique=False)

    op.create_table(
        "classes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("semester", sa.String(length=50), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("invite_code", sa.String(length=6), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("invite_code"),
    )

    op.create_table(
        "class_memberships",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("class_id", sa.Uuid(), nullable=False),
        sa.Column("starting_balance", sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.ForeignKeyConstraint(["class_id"], ["classes.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "class_id", name="uq_class_membership_user_class"),
    )
    op.create_index(op.f("ix_class_memberships_user_id"), "class_memberships", ["user_id"], unique=False)
    op.create_index(op.f("ix_class_memberships_class_id"), "class_memberships", ["class_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_class_memberships_class_id"), table_name="class_memberships")
    op.drop_index(op.f("ix_class_memberships_user_id"), table_name="class_memberships")
    op.drop_table("class_memberships")
    op.drop_table("classes")
    op.drop_index(op.f("ix_holdings_stock_symbol"), table_name="holdings")
    op.drop_table("holdings")
    op.drop_table("stock_prices")
