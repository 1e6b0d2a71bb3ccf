"""initial ledger schema

Revision ID: 202610011200
Revises:
Create Date: 2026-10-01 12:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202610011200"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=100)),
        sa.Column(
            "currency",
            sa.Enum("USD", "INR", name="currencycode"),
            nullable=False,
            server_default="INR",
        ),
        sa.Column("is_demo", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("username"),
    )

    op.create_table(
        "months",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("display_name", sa.String(length=40), nullable=False),
        sa.Column("income", sa.JSON(), nullable=False),
        sa.Column("expenses", sa.JSON(), nullable=False),
        sa.Column(
            "total_income_cents", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column(
            "total_expense_cents", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column(
            "carry_forward_cents", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("revision", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", "year", "month", name="uq_month_user_year_month"),
        sa.CheckConstraint("month >= 0 AND month <= 11", name="ck_month_index_range"),
        sa.CheckConstraint("total_income_cents >= 0", name="ck_month_income_positive"),
        sa.CheckConstraint(
            "total_expense_cents >= 0", name="ck_month_expense_positive"
        ),
    )
    op.create_index(
        "ix_months_user_year_month", "months", ["user_id", "year", "month"]
    )

    op.create_table(
        "recurring_templates",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("note", sa.Text(), nullable=False, server_default=""),
        sa.Column(
            "tag",
            sa.Enum("need", "want", "neutral", name="expensetag"),
            nullable=False,
            server_default="neutral",
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("amount_cents >= 0", name="ck_template_amount_positive"),
    )
    op.create_index(
        "ix_recurring_templates_user", "recurring_templates", ["user_id"]
    )


def downgrade():
    op.drop_index("ix_recurring_templates_user", table_name="recurring_templates")
    op.drop_table("recurring_templates")
    op.drop_index("ix_months_user_year_month", table_name="months")
    op.drop_table("months")
    op.drop_table("users")
