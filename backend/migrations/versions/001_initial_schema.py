"""Create users, sessions, the music catalog and the fleet tables.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

UUID keys default to gen_random_uuid(), built into PostgreSQL 13+.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def _user_fk() -> sa.Column:
    return sa.Column(
        "user_id",
        sa.UUID(),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )


def _vehicle_fk() -> sa.Column:
    return sa.Column(
        "vehicle_id",
        sa.Integer(),
        sa.ForeignKey("vehicles.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    # ---------------------------------------------------------------------
    # Accounts
    # ---------------------------------------------------------------------
    op.create_table(
        "users",
        sa.Column(
            "id",
            sa.UUID(),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("family_group_id", sa.String(36), nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_users_username", "users", ["username"], unique=True)
    op.create_index("idx_users_email", "users", ["email"], unique=True)
    op.create_index("idx_users_family_group", "users", ["family_group_id"])

    op.create_table(
        "user_roles",
        sa.Column(
            "user_id",
            sa.UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("role", sa.String(32), primary_key=True),
        sa.CheckConstraint(
            "role IN ('ADMIN', 'FLEETUSER', 'PARENT', 'YOUNGDRIVER', 'MUSICUSER')",
            name="ck_user_roles_role",
        ),
    )

    # Sessions store only the SHA-256 of the newest refresh token
    op.create_table(
        "sessions",
        sa.Column(
            "id",
            sa.UUID(),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        _user_fk(),
        sa.Column("last_refresh_token", sa.String(64), nullable=False),
        sa.Column("initiated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "is_revoked", sa.Boolean(), nullable=False, server_default="false"
        ),
    )
    op.create_index("idx_sessions_user_id", "sessions", ["user_id"])

    # ---------------------------------------------------------------------
    # Music catalog
    # ---------------------------------------------------------------------
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.String(300), nullable=False),
        _user_fk(),
        *_timestamps(),
    )
    op.create_index("idx_categories_user_id", "categories", ["user_id"])

    op.create_table(
        "playlists",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column(
            "category_id",
            sa.Integer(),
            sa.ForeignKey("categories.id", ondelete="CASCADE"),
            nullable=False,
        ),
        *_timestamps(),
    )
    op.create_index("idx_playlists_category_id", "playlists", ["category_id"])

    # order_id is dense and 1-based per playlist; not unique so a reorder
    # can move several rows inside one transaction
    op.create_table(
        "songs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("artist", sa.String(100), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column(
            "playlist_id",
            sa.Integer(),
            sa.ForeignKey("playlists.id", ondelete="CASCADE"),
            nullable=False,
        ),
        *_timestamps(),
        sa.CheckConstraint("order_id >= 1", name="ck_songs_order_id_positive"),
        sa.CheckConstraint("duration > 0", name="ck_songs_duration_positive"),
    )
    op.create_index("idx_songs_playlist_order", "songs", ["playlist_id", "order_id"])

    # ---------------------------------------------------------------------
    # Fleet
    # ---------------------------------------------------------------------
    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("make", sa.String(50), nullable=False),
        sa.Column("model", sa.String(50), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("license_plate", sa.String(20), nullable=False),
        sa.Column("description", sa.String(300), nullable=False),
        sa.Column("current_mileage", sa.Integer(), nullable=False, server_default="0"),
        _user_fk(),
        *_timestamps(),
        sa.CheckConstraint("current_mileage >= 0", name="ck_vehicles_mileage"),
    )
    op.create_index("idx_vehicles_user_id", "vehicles", ["user_id"])

    op.create_table(
        "trips",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("start_location", sa.String(100), nullable=False),
        sa.Column("end_location", sa.String(100), nullable=False),
        sa.Column("distance", sa.Float(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("purpose", sa.String(200), nullable=True),
        sa.Column("fuel_used", sa.Float(), nullable=True),
        _vehicle_fk(),
        _user_fk(),
        *_timestamps(),
    )
    op.create_index("idx_trips_vehicle_id", "trips", ["vehicle_id"])
    op.create_index("idx_trips_user_id", "trips", ["user_id"])

    op.create_table(
        "fuel_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("liters", sa.Float(), nullable=False),
        sa.Column("cost_per_liter", sa.Numeric(10, 3), nullable=False),
        sa.Column("total_cost", sa.Numeric(10, 2), nullable=False),
        sa.Column("mileage", sa.Integer(), nullable=False),
        sa.Column("station", sa.String(100), nullable=True),
        sa.Column("full_tank", sa.Boolean(), nullable=False, server_default="true"),
        _vehicle_fk(),
        _user_fk(),
        *_timestamps(),
    )
    op.create_index("idx_fuel_records_vehicle_id", "fuel_records", ["vehicle_id"])
    op.create_index("idx_fuel_records_user_id", "fuel_records", ["user_id"])

    op.create_table(
        "maintenance_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("service_type", sa.String(100), nullable=False),
        sa.Column("description", sa.String(300), nullable=False),
        sa.Column("cost", sa.Numeric(10, 2), nullable=False),
        sa.Column("mileage", sa.Integer(), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("provider", sa.String(100), nullable=True),
        sa.Column("next_service_due", sa.DateTime(timezone=True), nullable=True),
        _vehicle_fk(),
        _user_fk(),
        *_timestamps(),
    )
    op.create_index(
        "idx_maintenance_records_vehicle_id", "maintenance_records", ["vehicle_id"]
    )
    op.create_index(
        "idx_maintenance_records_user_id", "maintenance_records", ["user_id"]
    )

    op.create_table(
        "user_locations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _user_fk(),
        _vehicle_fk(),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("speed", sa.Float(), nullable=True),
        sa.Column("heading", sa.Float(), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "trip_id",
            sa.Integer(),
            sa.ForeignKey("trips.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )
    op.create_index("idx_user_locations_user_id", "user_locations", ["user_id"])
    op.create_index("idx_user_locations_vehicle_id", "user_locations", ["vehicle_id"])
    op.create_index("idx_user_locations_timestamp", "user_locations", ["timestamp"])


def downgrade() -> None:
    # Reverse dependency order
    op.drop_table("user_locations")
    op.drop_table("maintenance_records")
    op.drop_table("fuel_records")
    op.drop_table("trips")
    op.drop_table("vehicles")
    op.drop_table("songs")
    op.drop_table("playlists")
    op.drop_table("categories")
    op.drop_table("sessions")
    op.drop_table("user_roles")
    op.drop_table("users")
