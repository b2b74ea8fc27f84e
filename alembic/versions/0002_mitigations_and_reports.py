"""threat mitigations and stored compliance reports

Revision ID: 0002_mitigations_and_reports
Revises: 0001_initial_schema
Create Date: 2026-10-18 00:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "0002_mitigations_and_reports"
down_revision: Union[str, None] = "0001_initial_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "threat_mitigations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "threat_id", sa.Integer(),
            sa.ForeignKey("threats.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("mitigation_title", sa.String(500), nullable=False),
        sa.Column("mitigation_description", sa.Text(), nullable=True),
        sa.Column("mitigation_strategy", sa.String(20), nullable=False, server_default="reduce"),
        sa.Column("implementation_status", sa.String(20), nullable=False, server_default="proposed"),
        sa.Column("priority", sa.String(20), nullable=False, server_default="medium"),
        sa.Column("assigned_to", sa.String(255), nullable=True),
        sa.Column("estimated_effort", sa.String(100), nullable=True),
        sa.Column("cost_estimate", sa.Float(), nullable=True),
        sa.Column("implementation_date", sa.Date(), nullable=True),
        sa.Column("verification_method", sa.Text(), nullable=True),
        sa.Column("effectiveness_rating", sa.String(20), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_threat_mitigations_id", "threat_mitigations", ["id"])
    op.create_index("ix_threat_mitigations_threat_id", "threat_mitigations", ["threat_id"])
    op.create_index(
        "ix_threat_mitigations_implementation_status", "threat_mitigations", ["implementation_status"]
    )

    op.create_table(
        "compliance_reports",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "assessment_id", sa.Integer(),
            sa.ForeignKey("compliance_assessments.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("report_type", sa.String(50), nullable=False, server_default="compliance_report"),
        sa.Column("report_format", sa.String(20), nullable=False, server_default="pdf"),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("file_data", sa.LargeBinary(), nullable=False),
        sa.Column("overall_score", sa.Float(), nullable=True),
        sa.Column(
            "generated_by", sa.Integer(),
            sa.ForeignKey("api_keys.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("generated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_compliance_reports_id", "compliance_reports", ["id"])
    op.create_index("ix_compliance_reports_assessment_id", "compliance_reports", ["assessment_id"])


def downgrade() -> None:
    op.drop_table("compliance_reports")
    op.drop_table("threat_mitigations")
