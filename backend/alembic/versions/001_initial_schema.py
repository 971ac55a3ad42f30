"""Initial schema: orders, order_event audit log, order_counter.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def create_immutability_triggers() -> None:
    """Create immutability triggers for the order_event audit table.

    Call this function from any migration that uses batch mode on
    order_event, as batch mode drops and recreates tables which silently
    destroys triggers.
    """
    op.execute(
        "CREATE TRIGGER IF NOT EXISTS no_update_order_event "
        "BEFORE UPDATE ON order_event "
        "BEGIN SELECT RAISE(ABORT, 'order_event is immutable'); END;"
    )
    op.execute(
        "CREATE TRIGGER IF NOT EXISTS no_delete_order_event "
        "BEFORE DELETE ON order_event "
        "BEGIN SELECT RAISE(ABORT, 'order_event is immutable'); END;"
    )


def upgrade() -> None:
    # --- orders ---
    op.create_table(
        "orders",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("order_number", sa.String(), nullable=False),
        sa.Column("items", sa.Text(), nullable=False),
        sa.Column("kitchen_status", sa.String(), nullable=True),
        sa.Column("juicebar_status", sa.String(), nullable=True),
        sa.Column(
            "overall_status", sa.String(), nullable=False, server_default="pending"
        ),
        sa.Column("total", sa.String(), nullable=False),
        sa.Column("payment_method", sa.String(), nullable=True),
        sa.Column("payment_details", sa.Text(), nullable=True),
        sa.Column("waitress_id", sa.String(), nullable=False),
        sa.Column("waitress_name", sa.String(), nullable=False),
        sa.Column("customer_name", sa.String(), nullable=True),
        sa.Column("customer_phone", sa.String(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.String(), nullable=False),
        sa.Column("updated_at", sa.String(), nullable=False),
        sa.Column("ready_at", sa.String(), nullable=True),
        sa.Column("completed_at", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_number"),
        sa.CheckConstraint(
            "kitchen_status IN ('pending', 'inprogress', 'ready')",
            name="ck_orders_kitchen_status",
        ),
        sa.CheckConstraint(
            "juicebar_status IN ('pending', 'inprogress', 'ready')",
            name="ck_orders_juicebar_status",
        ),
        sa.CheckConstraint(
            "overall_status IN ('pending', 'inprogress', 'ready', 'completed')",
            name="ck_orders_overall_status",
        ),
        sa.CheckConstraint(
            "payment_method IN ('cash', 'card', 'mobile')",
            name="ck_orders_payment_method",
        ),
    )
    op.create_index("ix_orders_overall_status", "orders", ["overall_status"])
    op.create_index("ix_orders_created_at", "orders", ["created_at"])
    op.create_index(
        "ix_orders_waitress_status", "orders", ["waitress_id", "overall_status"]
    )

    # --- order_event ---
    op.create_table(
        "order_event",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("order_id", sa.String(), nullable=False),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("old_overall", sa.String(), nullable=True),
        sa.Column("new_overall", sa.String(), nullable=False),
        sa.Column("station", sa.String(), nullable=True),
        sa.Column("station_status", sa.String(), nullable=True),
        sa.Column("actor_id", sa.String(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("detail", sa.Text(), nullable=True),
        sa.Column("recorded_at", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_order_event_order_id", "order_event", ["order_id"])
    op.create_index("ix_order_event_recorded", "order_event", ["recorded_at"])

    # --- order_counter ---
    op.create_table(
        "order_counter",
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("value", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("name"),
    )
    op.execute("INSERT INTO order_counter (name, value) VALUES ('order_number', 0)")

    # --- Immutability triggers ---
    create_immutability_triggers()


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS no_delete_order_event")
    op.execute("DROP TRIGGER IF EXISTS no_update_order_event")
    op.drop_table("order_counter")
    op.drop_index("ix_order_event_recorded", table_name="order_event")
    op.drop_index("ix_order_event_order_id", table_name="order_event")
    op.drop_table("order_event")
    op.drop_index("ix_orders_waitress_status", table_name="orders")
    op.drop_index("ix_orders_created_at", table_name="orders")
    op.drop_index("ix_orders_overall_status", table_name="orders")
    op.drop_table("orders")
