"""initial portal schema

Revision ID: 3f9c1a2b7d10
Revises:
Create Date: 2026-10-17 10:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f9c1a2b7d10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_ID = sa.String(length=36)


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    if "companies" in set(inspector.get_table_names()):
        return

    op.create_table(
        "companies",
        sa.Column("id", _ID, nullable=False),
        sa.Column("company_name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "contacts",
        sa.Column("id", _ID, nullable=False),
        sa.Column("first_name", sa.String(length=255), nullable=True),
        sa.Column("last_name", sa.String(length=255), nullable=True),
        sa.Column("goes_by", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("role", sa.String(length=30), nullable=True),
        sa.Column("owner_id", _ID, nullable=True),
        sa.Column("crm_id", _ID, nullable=True),
        sa.Column("firebase_uid", sa.String(length=128), nullable=True),
        sa.Column("is_activated", sa.Boolean(), nullable=False),
        sa.Column("contact_company_id", _ID, nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["contact_company_id"], ["companies.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_contacts_email", "contacts", ["email"], unique=False)
    op.create_index("ix_contacts_firebase_uid", "contacts", ["firebase_uid"], unique=True)
    op.create_index("ix_contacts_contact_company_id", "contacts", ["contact_company_id"], unique=False)

    op.create_table(
        "proposals",
        sa.Column("id", _ID, nullable=False),
        sa.Column("company_id", _ID, nullable=True),
        sa.Column("client_name", sa.String(length=255), nullable=True),
        sa.Column("client_company", sa.String(length=255), nullable=True),
        sa.Column("purpose", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("total_price", sa.Float(), nullable=True),
        sa.Column("date_issued", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_proposals_company_id", "proposals", ["company_id"], unique=False)
    op.create_index("ix_proposals_status", "proposals", ["status"], unique=False)

    op.create_table(
        "consultant_deliverables",
        sa.Column("id", _ID, nullable=False),
        sa.Column("contact_id", _ID, nullable=False),
        sa.Column("proposal_id", _ID, nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=True),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("due_date", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["contact_id"], ["contacts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["proposal_id"], ["proposals.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_consultant_deliverables_contact_id", "consultant_deliverables", ["contact_id"], unique=False)
    op.create_index("ix_consultant_deliverables_proposal_id", "consultant_deliverables", ["proposal_id"], unique=False)

    op.create_table(
        "invoices",
        sa.Column("id", _ID, nullable=False),
        sa.Column("proposal_id", _ID, nullable=False),
        sa.Column("invoice_number", sa.String(length=64), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("due_date", sa.DateTime(), nullable=True),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.Column("paid_by_contact_id", _ID, nullable=True),
        sa.Column("week", sa.Integer(), nullable=True),
        sa.Column("trigger", sa.String(length=255), nullable=True),
        sa.Column("stripe_customer_id", sa.String(length=255), nullable=True),
        sa.Column("stripe_checkout_session_id", sa.String(length=255), nullable=True),
        sa.Column("stripe_payment_intent_id", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["proposal_id"], ["proposals.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["paid_by_contact_id"], ["contacts.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_invoices_proposal_id", "invoices", ["proposal_id"], unique=False)
    op.create_index("ix_invoices_status", "invoices", ["status"], unique=False)
    op.create_index(
        "ix_invoices_stripe_checkout_session_id", "invoices", ["stripe_checkout_session_id"], unique=True
    )

    op.create_table(
        "work_packages",
        sa.Column("id", _ID, nullable=False),
        sa.Column("company_id", _ID, nullable=True),
        sa.Column("contact_id", _ID, nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("priority_summary", sa.Text(), nullable=True),
        sa.Column("total_cost", sa.Float(), nullable=True),
        sa.Column("effective_start_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["contact_id"], ["contacts.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_work_packages_company_id", "work_packages", ["company_id"], unique=False)
    op.create_index("ix_work_packages_contact_id", "work_packages", ["contact_id"], unique=False)

    op.create_table(
        "work_package_phases",
        sa.Column("id", _ID, nullable=False),
        sa.Column("work_package_id", _ID, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["work_package_id"], ["work_packages.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_work_package_phases_work_package_id", "work_package_phases", ["work_package_id"], unique=False)

    op.create_table(
        "work_package_items",
        sa.Column("id", _ID, nullable=False),
        sa.Column("work_package_id", _ID, nullable=False),
        sa.Column("work_package_phase_id", _ID, nullable=True),
        sa.Column("deliverable_label", sa.String(length=255), nullable=True),
        sa.Column("deliverable_description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=True),
        sa.ForeignKeyConstraint(["work_package_id"], ["work_packages.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["work_package_phase_id"], ["work_package_phases.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_work_package_items_work_package_id", "work_package_items", ["work_package_id"], unique=False)
    op.create_index(
        "ix_work_package_items_work_package_phase_id", "work_package_items", ["work_package_phase_id"], unique=False
    )

    op.create_table(
        "work_collateral",
        sa.Column("id", _ID, nullable=False),
        sa.Column("work_package_item_id", _ID, nullable=False),
        sa.Column("type", sa.String(length=50), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=True),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("review_requested_at", sa.DateTime(), nullable=True),
        sa.Column("review_completed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["work_package_item_id"], ["work_package_items.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_work_collateral_work_package_item_id", "work_collateral", ["work_package_item_id"], unique=False)
    op.create_index("ix_work_collateral_type", "work_collateral", ["type"], unique=False)

    op.create_table(
        "presentations",
        sa.Column("id", _ID, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("slides", sa.Text(), nullable=True),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    tables = set(inspector.get_table_names())
    for table in (
        "presentations",
        "work_collateral",
        "work_package_items",
        "work_package_phases",
        "work_packages",
        "invoices",
        "consultant_deliverables",
        "proposals",
        "contacts",
        "companies",
    ):
        if table in tables:
            op.drop_table(table)
