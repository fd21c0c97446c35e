"""carpools and carpool_passengers (seat counter + unique membership)

Revision ID: 002
Revises: 001
Create Date: 2024-11-06 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "carpools",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("driver_id", sa.Integer(), nullable=False),
        sa.Column("origin_lat", sa.Float(), nullable=False),
        sa.Column("origin_lng", sa.Float(), nullable=False),
        sa.Column("origin_address", sa.String(length=300), nullable=False),
        sa.Column("destination_lat", sa.Float(), nullable=False),
        sa.Column("destination_lng", sa.Float(), nullable=False),
        sa.Column("destination_address", sa.String(length=300), nullable=False),
        sa.Column("departure_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("max_passengers", sa.Integer(), nullable=False),
        sa.Column("passenger_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.CheckConstraint("max_passengers BETWEEN 1 AND 8", name="ck_carpools_max_passengers_range"),
        sa.CheckConstraint("passenger_count <= max_passengers", name="ck_carpools_passenger_count_capacity"),
        sa.ForeignKeyConstraint(["driver_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_carpools_id"), "carpools", ["id"], unique=False)
    op.create_index(op.f("ix_carpools_driver_id"), "carpools", ["driver_id"], unique=False)
    op.create_index(op.f("ix_carpools_departure_time"), "carpools", ["departure_time"], unique=False)
    op.create_index(op.f("ix_carpools_status"), "carpools", ["status"], unique=False)
    # list view: status filter + departure sort
    op.create_index("ix_carpools_status_departure", "carpools", ["status", "departure_time"], unique=False)

    op.create_table(
        "carpool_passengers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("carpool_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(["carpool_id"], ["carpools.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("carpool_id", "user_id", name="uq_carpool_passenger_user"),
    )
    op.create_index(op.f("ix_carpool_passengers_id"), "carpool_passengers", ["id"], unique=False)
    op.create_index(op.f("ix_carpool_passengers_carpool_id"), "carpool_passengers", ["carpool_id"], unique=False)
    op.create_index(op.f("ix_carpool_passengers_user_id"), "carpool_passengers", ["user_id"], unique=False)


def downgrade() -> None:
    op.drop_table("carpool_passengers")
    op.drop_index("ix_carpools_status_departure", table_name="carpools")
    op.drop_table("carpools")
