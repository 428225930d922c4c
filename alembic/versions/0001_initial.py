"""initial

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18

"""

from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

def _created_at():
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)

def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("phone", sa.String(length=40), nullable=False, server_default=""),
        sa.Column("role", sa.String(length=30), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _created_at(),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"], unique=False)

    op.create_table(
        "routes",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("origin", sa.String(length=120), nullable=False),
        sa.Column("destination", sa.String(length=120), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _created_at(),
    )
    op.create_index("ix_routes_name", "routes", ["name"], unique=True)

    op.create_table(
        "vehicles",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("price_multiplier", sa.Float(), nullable=False, server_default="1.0"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _created_at(),
    )
    op.create_index("ix_vehicles_name", "vehicles", ["name"], unique=True)

    op.create_table(
        "schedules",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("route_id", sa.String(length=36), sa.ForeignKey("routes.id"), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=True),
        sa.Column("every_day", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("time", sa.String(length=5), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("vehicle_id", sa.String(length=36), sa.ForeignKey("vehicles.id"), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _created_at(),
    )
    op.create_index("ix_schedules_route_id", "schedules", ["route_id"], unique=False)
    op.create_index("ix_schedules_vehicle_id", "schedules", ["vehicle_id"], unique=False)

    op.create_table(
        "departures",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("schedule_id", sa.String(length=36), sa.ForeignKey("schedules.id"), nullable=False),
        sa.Column("departure_date", sa.Date(), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("booked_seats", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("blocked_seats", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="SCHEDULED"),
        sa.Column("vehicle_id", sa.String(length=36), sa.ForeignKey("vehicles.id"), nullable=True),
        sa.Column("driver_notes", sa.Text(), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("schedule_id", "departure_date", name="uq_departure_schedule_date"),
    )
    op.create_index("ix_departures_schedule_id", "departures", ["schedule_id"], unique=False)
    op.create_index("ix_departures_departure_date", "departures", ["departure_date"], unique=False)
    op.create_index("ix_departures_status", "departures", ["status"], unique=False)
    op.create_index("ix_departures_vehicle_id", "departures", ["vehicle_id"], unique=False)

    op.create_table(
        "pricing_tiers",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("customer_type", sa.String(length=20), nullable=False),
        sa.Column("base_price", sa.Integer(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _created_at(),
    )
    op.create_index("ix_pricing_tiers_customer_type", "pricing_tiers", ["customer_type"], unique=False)

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("booking_ref", sa.String(length=20), nullable=False),
        sa.Column("departure_id", sa.String(length=36), sa.ForeignKey("departures.id"), nullable=False),
        sa.Column("return_departure_id", sa.String(length=36), sa.ForeignKey("departures.id"), nullable=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("guest_first_name", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("guest_last_name", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("guest_email", sa.String(length=320), nullable=False, server_default=""),
        sa.Column("guest_phone", sa.String(length=40), nullable=False, server_default=""),
        sa.Column("customer_type", sa.String(length=20), nullable=False, server_default="REGULAR"),
        sa.Column("pricing_tier_id", sa.String(length=36), sa.ForeignKey("pricing_tiers.id"), nullable=True),
        sa.Column("passenger_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("extra_luggage", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("pets", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("special_requests", sa.Text(), nullable=False, server_default=""),
        sa.Column("subtotal", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("savings", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_amount", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="CONFIRMED"),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_bookings_booking_ref", "bookings", ["booking_ref"], unique=True)
    op.create_index("ix_bookings_departure_id", "bookings", ["departure_id"], unique=False)
    op.create_index("ix_bookings_return_departure_id", "bookings", ["return_departure_id"], unique=False)
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"], unique=False)
    op.create_index("ix_bookings_pricing_tier_id", "bookings", ["pricing_tier_id"], unique=False)
    op.create_index("ix_bookings_status", "bookings", ["status"], unique=False)

    op.create_table(
        "passengers",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("booking_id", sa.String(length=36), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("age", sa.Integer(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_passengers_booking_id", "passengers", ["booking_id"], unique=False)

    op.create_table(
        "settings",
        sa.Column("key", sa.String(length=80), primary_key=True),
        sa.Column("int_value", sa.Integer(), nullable=True),
        sa.Column("str_value", sa.String(length=255), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("actor_user_id", sa.String(length=36), nullable=False),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("entity_type", sa.String(length=40), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=False),
        sa.Column("details_json", sa.Text(), nullable=False, server_default="{}"),
        _created_at(),
    )
    op.create_index("ix_audit_logs_actor_user_id", "audit_logs", ["actor_user_id"], unique=False)
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"], unique=False)
    op.create_index("ix_audit_logs_entity_type", "audit_logs", ["entity_type"], unique=False)
    op.create_index("ix_audit_logs_entity_id", "audit_logs", ["entity_id"], unique=False)
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"], unique=False)

    op.create_table(
        "email_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("to_email", sa.String(length=320), nullable=False),
        sa.Column("subject", sa.String(length=200), nullable=False),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="queued"),
        sa.Column("related_booking_ref", sa.String(length=20), nullable=False, server_default=""),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text(), nullable=True),
        _created_at(),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_email_logs_to_email", "email_logs", ["to_email"], unique=False)
    op.create_index("ix_email_logs_status", "email_logs", ["status"], unique=False)
    op.create_index("ix_email_logs_related_booking_ref", "email_logs", ["related_booking_ref"], unique=False)


def downgrade() -> None:
    op.drop_table("email_logs")
    op.drop_table("audit_logs")
    op.drop_table("settings")
    op.drop_table("passengers")
    op.drop_table("bookings")
    op.drop_table("pricing_tiers")
    op.drop_table("departures")
    op.drop_table("schedules")
    op.drop_table("vehicles")
    op.drop_table("routes")
    op.drop_table("users")
