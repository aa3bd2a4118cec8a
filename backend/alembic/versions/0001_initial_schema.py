"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates all tables for the Meeting Room Reservation Portal:
users, rooms, reservations, email_logs, integration_connections.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(36), primary_key=True),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="applicant"),
        sa.Column("department", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- rooms ---
    op.create_table(
        "rooms",
        sa.Column("room_id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("capacity", sa.Integer, nullable=False),
        sa.Column("facilities", sa.JSON, nullable=False),
        sa.Column("floor", sa.String(20), nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("capacity > 0", name="ck_rooms_capacity_positive"),
    )

    # --- reservations (ordinary bookings and change-request records) ---
    op.create_table(
        "reservations",
        sa.Column("reservation_id", sa.String(36), primary_key=True),
        sa.Column("room_id", sa.String(36), sa.ForeignKey("rooms.room_id"), nullable=False),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("user_name", sa.String(100), nullable=False),
        sa.Column("start_time", sa.DateTime, nullable=False),
        sa.Column("end_time", sa.DateTime, nullable=False),
        sa.Column("purpose", sa.String(500), nullable=False),
        sa.Column("participants", sa.Integer, nullable=False, server_default="1"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        sa.Column("access_token", sa.String(100), nullable=True),
        sa.Column("external_visitors", sa.JSON, nullable=True),
        sa.Column("is_change_request", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("original_reservation_id", sa.String(36), sa.ForeignKey("reservations.reservation_id"), nullable=True),
        sa.Column("change_reason", sa.Text, nullable=True),
        sa.Column("changes", sa.JSON, nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
        sa.CheckConstraint("end_time > start_time", name="ck_reservations_interval"),
        sa.CheckConstraint("participants >= 1", name="ck_reservations_participants"),
    )
    op.create_index("ix_reservations_room_start", "reservations", ["room_id", "start_time"])
    op.create_index("ix_reservations_original", "reservations", ["original_reservation_id"])

    # --- email_logs ---
    op.create_table(
        "email_logs",
        sa.Column("email_id", sa.String(36), primary_key=True),
        sa.Column("email_type", sa.String(40), nullable=False),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("recipients", sa.JSON, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("bounce_reason", sa.String(255), nullable=True),
        sa.Column("reservation_id", sa.String(36), nullable=True),
        sa.Column("reservation_details", sa.String(500), nullable=False, server_default=""),
        sa.Column("access_token", sa.String(100), nullable=True),
        sa.Column("has_attachment", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("resent_from_id", sa.String(36), sa.ForeignKey("email_logs.email_id"), nullable=True),
        sa.Column("sent_at", sa.DateTime, nullable=False),
    )

    # --- integration_connections ---
    op.create_table(
        "integration_connections",
        sa.Column("kind", sa.String(30), primary_key=True),
        sa.Column("endpoint_url", sa.String(500), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="disconnected"),
        sa.Column("connected_at", sa.DateTime, nullable=True),
        sa.Column("last_error", sa.String(500), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("integration_connections")
    op.drop_table("email_logs")
    op.drop_index("ix_reservations_original", table_name="reservations")
    op.drop_index("ix_reservations_room_start", table_name="reservations")
    op.drop_table("reservations")
    op.drop_table("rooms")
    op.drop_table("users")
