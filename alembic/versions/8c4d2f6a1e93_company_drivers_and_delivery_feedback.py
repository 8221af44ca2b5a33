"""Company drivers and delivery feedback

Revision ID: 8c4d2f6a1e93
Revises: 3b7e91c04a2d
Create Date: 2026-10-18 14:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "8c4d2f6a1e93"
down_revision: Union[str, None] = "3b7e91c04a2d"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


COMPANY_TYPES = ("LOGISTICS", "COURIER", "E_COMMERCE", "MARKETPLACE", "GROCERY", "PHARMACY")


def upgrade() -> None:
    op.create_table(
        "company_profiles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("company_name", sa.String(length=150), nullable=False),
        sa.Column("unified_number", sa.String(length=30), nullable=False),
        sa.Column("company_type", sa.Enum(*COMPANY_TYPES, name="companytype"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )
    op.create_index(op.f("ix_company_profiles_id"), "company_profiles", ["id"], unique=False)
    op.create_index(
        op.f("ix_company_profiles_unified_number"), "company_profiles", ["unified_number"], unique=True
    )

    op.create_table(
        "company_drivers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_profile_id", sa.Integer(), nullable=False),
        sa.Column("driver_id", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("status", sa.Enum("ACTIVE", "INACTIVE", name="driverstatus"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["company_profile_id"], ["company_profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_profile_id", "driver_id", name="uq_company_driver_id"),
    )
    op.create_index(op.f("ix_company_drivers_id"), "company_drivers", ["id"], unique=False)
    op.create_index(
        op.f("ix_company_drivers_company_profile_id"), "company_drivers", ["company_profile_id"], unique=False
    )
    op.create_index(op.f("ix_company_drivers_driver_id"), "company_drivers", ["driver_id"], unique=False)

    op.create_table(
        "shipment_lookups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_profile_id", sa.Integer(), nullable=False),
        sa.Column("company_driver_id", sa.Integer(), nullable=True),
        sa.Column("driver_id", sa.String(length=50), nullable=False),
        sa.Column("shipment_number", sa.String(length=100), nullable=False),
        sa.Column("address_digital_id", sa.String(length=16), nullable=False),
        sa.Column(
            "status",
            sa.Enum("PENDING_FEEDBACK", "COMPLETED", name="lookupstatus"),
            nullable=False,
        ),
        sa.Column("delivery_completed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["company_profile_id"], ["company_profiles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["company_driver_id"], ["company_drivers.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_shipment_lookups_id"), "shipment_lookups", ["id"], unique=False)
    op.create_index(
        op.f("ix_shipment_lookups_company_profile_id"), "shipment_lookups", ["company_profile_id"], unique=False
    )
    op.create_index(
        op.f("ix_shipment_lookups_company_driver_id"), "shipment_lookups", ["company_driver_id"], unique=False
    )
    op.create_index(
        op.f("ix_shipment_lookups_address_digital_id"), "shipment_lookups", ["address_digital_id"], unique=False
    )
    op.create_index(op.f("ix_shipment_lookups_status"), "shipment_lookups", ["status"], unique=False)

    op.create_table(
        "driver_feedback",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("shipment_lookup_id", sa.Integer(), nullable=False),
        sa.Column(
            "delivery_status",
            sa.Enum("DELIVERED", "FAILED", name="deliverystatus"),
            nullable=False,
        ),
        sa.Column("location_score", sa.Integer(), nullable=False),
        sa.Column("customer_behavior", sa.String(length=30), nullable=False),
        sa.Column("failure_reason", sa.String(length=30), nullable=True),
        sa.Column("additional_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["shipment_lookup_id"], ["shipment_lookups.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("shipment_lookup_id"),
    )
    op.create_index(op.f("ix_driver_feedback_id"), "driver_feedback", ["id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_driver_feedback_id"), table_name="driver_feedback")
    op.drop_table("driver_feedback")

    op.drop_index(op.f("ix_shipment_lookups_status"), table_name="shipment_lookups")
    op.drop_index(op.f("ix_shipment_lookups_address_digital_id"), table_name="shipment_lookups")
    op.drop_index(op.f("ix_shipment_lookups_company_driver_id"), table_name="shipment_lookups")
    op.drop_index(op.f("ix_shipment_lookups_company_profile_id"), table_name="shipment_lookups")
    op.drop_index(op.f("ix_shipment_lookups_id"), table_name="shipment_lookups")
    op.drop_table("shipment_lookups")

    op.drop_index(op.f("ix_company_drivers_driver_id"), table_name="company_drivers")
    op.drop_index(op.f("ix_company_drivers_company_profile_id"), table_name="company_drivers")
    op.drop_index(op.f("ix_company_drivers_id"), table_name="company_drivers")
    op.drop_table("company_drivers")

    op.drop_index(op.f("ix_company_profiles_unified_number"), table_name="company_profiles")
    op.drop_index(op.f("ix_company_profiles_id"), table_name="company_profiles")
    op.drop_table("company_profiles")

    bind = op.get_bind()
    for enum_name in ("deliverystatus", "lookupstatus", "driverstatus", "companytype"):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)
