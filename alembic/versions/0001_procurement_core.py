"""procurement core: rfps, bids, projects, idempotency, events, audit

Revision ID: 0001_procurement_core
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_procurement_core"
down_revision = None
branch_labels = None
depends_on = None


JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade():
    op.create_table(
        "rfp_requests",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("municipality_id", sa.String(length=128), nullable=False),
        sa.Column("created_by", sa.String(length=128), nullable=False),
        sa.Column("title", sa.String(length=256), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=128), nullable=False),
        sa.Column("budget_min", sa.Numeric(20, 2), nullable=True),
        sa.Column("budget_max", sa.Numeric(20, 2), nullable=True),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default=sa.text("'USD'")),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("requirements_json", JSONType, nullable=False),
        sa.Column("evaluation_criteria_json", JSONType, nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default=sa.text("'draft'")),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("selected_bid_id", sa.Uuid(), nullable=True),
        sa.Column("project_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "(status = 'closed' AND selected_bid_id IS NOT NULL AND project_id IS NOT NULL)"
            " OR (status <> 'closed' AND selected_bid_id IS NULL AND project_id IS NULL)",
            name="ck_rfp_award_refs",
        ),
    )
    op.create_index("ix_rfp_requests_municipality", "rfp_requests", ["municipality_id"])
    op.create_index("ix_rfp_requests_status", "rfp_requests", ["status"])
    op.create_index("ix_rfp_requests_category", "rfp_requests", ["category"])
    op.create_index("ix_rfp_requests_deadline", "rfp_requests", ["deadline"])

    op.create_table(
        "bids",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "rfp_id",
            sa.Uuid(),
            sa.ForeignKey("rfp_requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("developer_id", sa.String(length=128), nullable=False),
        sa.Column("solution_id", sa.String(length=128), nullable=True),
        sa.Column("proposal_text", sa.Text(), nullable=False),
        sa.Column("technical_approach", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(20, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default=sa.text("'USD'")),
        sa.Column("timeline", sa.String(length=200), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default=sa.text("'submitted'")),
        sa.Column("project_id", sa.Uuid(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("price > 0", name="ck_bids_price_positive"),
    )
    op.create_index(
        "uq_bids_one_submitted_per_developer",
        "bids",
        ["rfp_id", "developer_id"],
        unique=True,
        postgresql_where=sa.text("status = 'submitted'"),
        sqlite_where=sa.text("status = 'submitted'"),
    )
    op.create_index("ix_bids_rfp_status", "bids", ["rfp_id", "status"])
    op.create_index("ix_bids_developer", "bids", ["developer_id"])

    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "rfp_id",
            sa.Uuid(),
            sa.ForeignKey("rfp_requests.id", ondelete="RESTRICT"),
            nullable=False,
            unique=True,
        ),
        sa.Column(
            "winning_bid_id",
            sa.Uuid(),
            sa.ForeignKey("bids.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("solution_id", sa.String(length=128), nullable=True),
        sa.Column("municipality_id", sa.String(length=128), nullable=False),
        sa.Column("developer_id", sa.String(length=128), nullable=False),
        sa.Column("title", sa.String(length=256), nullable=False),
        sa.Column("budget", sa.Numeric(20, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default=sa.text("'USD'")),
        sa.Column("status", sa.String(length=32), nullable=False, server_default=sa.text("'planning'")),
        sa.Column("phase", sa.String(length=32), nullable=False, server_default=sa.text("'initiation'")),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_projects_municipality", "projects", ["municipality_id"])
    op.create_index("ix_projects_developer", "projects", ["developer_id"])

    op.create_table(
        "idempotency_key_records",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("rfp_id", sa.Uuid(), nullable=False),
        sa.Column("participant_id", sa.String(length=128), nullable=False),
        sa.Column("endpoint_key", sa.String(length=64), nullable=False),
        sa.Column("idem_key", sa.String(length=128), nullable=False),
        sa.Column("request_hash", sa.String(length=128), nullable=False),
        sa.Column("response_status", sa.String(length=16), nullable=False, server_default=sa.text("'200'")),
        sa.Column("response_json", JSONType, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("rfp_id", "participant_id", "endpoint_key", "idem_key", name="uq_idem_scope"),
    )
    op.create_index("ix_idem_lookup", "idempotency_key_records", ["rfp_id", "participant_id", "endpoint_key"])

    op.create_table(
        "event_logs",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("rfp_id", sa.Uuid(), nullable=False),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("actor_participant_id", sa.String(length=128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("payload_json", JSONType, nullable=False),
    )
    op.create_index("ix_event_logs_rfp", "event_logs", ["rfp_id"])
    op.create_index("ix_event_logs_type", "event_logs", ["event_type"])

    op.create_table(
        "audit_log_records",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("request_id", sa.String(length=128), nullable=False),
        sa.Column("route", sa.String(length=256), nullable=False),
        sa.Column("method", sa.String(length=16), nullable=False),
        sa.Column("actor_participant_id", sa.String(length=128), nullable=False),
        sa.Column("actor_role", sa.String(length=64), nullable=False),
        sa.Column("rfp_id", sa.Uuid(), nullable=True),
        sa.Column("action", sa.String(length=96), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default=sa.text("'ok'")),
        sa.Column("payload_hash", sa.String(length=128), nullable=False),
        sa.Column("payload_summary_json", JSONType, nullable=False),
        sa.Column("ref_id", sa.String(length=128), nullable=True),
    )
    op.create_index("ix_audit_rfp", "audit_log_records", ["rfp_id"])
    op.create_index("ix_audit_action", "audit_log_records", ["action"])
    op.create_index("ix_audit_created", "audit_log_records", ["created_at"])


def downgrade():
    op.drop_index("ix_audit_created", table_name="audit_log_records")
    op.drop_index("ix_audit_action", table_name="audit_log_records")
    op.drop_index("ix_audit_rfp", table_name="audit_log_records")
    op.drop_table("audit_log_records")

    op.drop_index("ix_event_logs_type", table_name="event_logs")
    op.drop_index("ix_event_logs_rfp", table_name="event_logs")
    op.drop_table("event_logs")

    op.drop_index("ix_idem_lookup", table_name="idempotency_key_records")
    op.drop_table("idempotency_key_records")

    op.drop_index("ix_projects_developer", table_name="projects")
    op.drop_index("ix_projects_municipality", table_name="projects")
    op.drop_table("projects")

    op.drop_index("ix_bids_developer", table_name="bids")
    op.drop_index("ix_bids_rfp_status", table_name="bids")
    op.drop_index("uq_bids_one_submitted_per_developer", table_name="bids")
    op.drop_table("bids")

    op.drop_index("ix_rfp_requests_deadline", table_name="rfp_requests")
    op.drop_index("ix_rfp_requests_category", table_name="rfp_requests")
    op.drop_index("ix_rfp_requests_status", table_name="rfp_requests")
    op.drop_index("ix_rfp_requests_municipality", table_name="rfp_requests")
    op.drop_table("rfp_requests")
