"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 00:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "api_keys",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("key_hash", sa.String(255), nullable=False),
        sa.Column("label", sa.String(255), nullable=True),
        sa.Column("role", sa.String(50), nullable=False, server_default="viewer"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_api_keys_id", "api_keys", ["id"])
    op.create_index("ix_api_keys_key_hash", "api_keys", ["key_hash"], unique=True)

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("actor_id", sa.Integer(), sa.ForeignKey("api_keys.id"), nullable=True),
        sa.Column("actor_source", sa.String(50), nullable=False),
        sa.Column("actor_role", sa.String(50), nullable=False),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("resource_type", sa.String(50), nullable=True),
        sa.Column("resource_id", sa.Integer(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(255), nullable=True),
    )
    op.create_index("ix_activity_logs_id", "activity_logs", ["id"])
    op.create_index("ix_activity_logs_timestamp", "activity_logs", ["timestamp"])
    op.create_index("ix_activity_logs_actor_id", "activity_logs", ["actor_id"])
    op.create_index("ix_activity_logs_action", "activity_logs", ["action"])
    op.create_index("ix_activity_logs_resource_type", "activity_logs", ["resource_type"])
    op.create_index("ix_activity_logs_resource_id", "activity_logs", ["resource_id"])

    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("industry", sa.String(100), nullable=True),
        sa.Column("size", sa.String(50), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_organizations_id", "organizations", ["id"])
    op.create_index("ix_organizations_name", "organizations", ["name"])

    op.create_table(
        "nist_csf_functions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("function_code", sa.String(10), nullable=False),
        sa.Column("function_name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_nist_csf_functions_id", "nist_csf_functions", ["id"])
    op.create_index("ix_nist_csf_functions_function_code", "nist_csf_functions", ["function_code"], unique=True)

    op.create_table(
        "nist_csf_categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "function_id", sa.Integer(),
            sa.ForeignKey("nist_csf_functions.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("category_code", sa.String(20), nullable=False),
        sa.Column("category_name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_nist_csf_categories_id", "nist_csf_categories", ["id"])
    op.create_index("ix_nist_csf_categories_function_id", "nist_csf_categories", ["function_id"])
    op.create_index("ix_nist_csf_categories_category_code", "nist_csf_categories", ["category_code"], unique=True)

    op.create_table(
        "nist_csf_controls",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "category_id", sa.Integer(),
            sa.ForeignKey("nist_csf_categories.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("control_code", sa.String(50), nullable=False),
        sa.Column("control_name", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("guidance", sa.Text(), nullable=True),
        sa.Column("importance", sa.String(20), nullable=False, server_default="medium"),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_nist_csf_controls_id", "nist_csf_controls", ["id"])
    op.create_index("ix_nist_csf_controls_category_id", "nist_csf_controls", ["category_id"])
    op.create_index("ix_nist_csf_controls_control_code", "nist_csf_controls", ["control_code"], unique=True)

    op.create_table(
        "compliance_assessments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "organization_id", sa.Integer(),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("assessment_name", sa.String(255), nullable=False),
        sa.Column("assessment_version", sa.String(50), nullable=False, server_default="1.0"),
        sa.Column("framework_version", sa.String(50), nullable=False, server_default="NIST CSF v1.1"),
        sa.Column("status", sa.String(50), nullable=False, server_default="draft"),
        sa.Column("scope", sa.Text(), nullable=True),
        sa.Column("assessment_date", sa.Date(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("completion_percentage", sa.Float(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_compliance_assessments_id", "compliance_assessments", ["id"])
    op.create_index("ix_compliance_assessments_organization_id", "compliance_assessments", ["organization_id"])
    op.create_index("ix_compliance_assessments_status", "compliance_assessments", ["status"])

    op.create_table(
        "compliance_control_assessments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "assessment_id", sa.Integer(),
            sa.ForeignKey("compliance_assessments.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "control_id", sa.Integer(),
            sa.ForeignKey("nist_csf_controls.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("implementation_status", sa.String(50), nullable=False, server_default="not_implemented"),
        sa.Column("maturity_level", sa.String(50), nullable=True),
        sa.Column("compliance_score", sa.Float(), nullable=True),
        sa.Column("questionnaire_response", sa.Text(), nullable=True),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("recommendations", sa.Text(), nullable=True),
        sa.Column("evidence_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("assessed_by", sa.Integer(), sa.ForeignKey("api_keys.id"), nullable=True),
        sa.Column("assessed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("assessment_id", "control_id", name="uq_control_assessment_pair"),
    )
    op.create_index("ix_compliance_control_assessments_id", "compliance_control_assessments", ["id"])
    op.create_index(
        "ix_compliance_control_assessments_assessment_id", "compliance_control_assessments", ["assessment_id"]
    )
    op.create_index("ix_compliance_control_assessments_control_id", "compliance_control_assessments", ["control_id"])
    op.create_index(
        "ix_compliance_control_assessments_implementation_status",
        "compliance_control_assessments",
        ["implementation_status"],
    )

    op.create_table(
        "risk_register",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("risk_id", sa.String(100), nullable=False),
        sa.Column("assessment_id", sa.Integer(), sa.ForeignKey("compliance_assessments.id"), nullable=True),
        sa.Column("control_id", sa.Integer(), sa.ForeignKey("nist_csf_controls.id"), nullable=True),
        sa.Column("subcategory_id", sa.String(50), nullable=True),
        sa.Column("risk_description", sa.Text(), nullable=False),
        sa.Column("risk_category", sa.String(50), nullable=True),
        sa.Column("likelihood", sa.Integer(), nullable=False),
        sa.Column("impact", sa.Integer(), nullable=False),
        sa.Column("risk_score", sa.Integer(), nullable=False),
        sa.Column("risk_level", sa.String(50), nullable=False),
        sa.Column("mitigation_strategy", sa.Text(), nullable=True),
        sa.Column("mitigation_owner", sa.String(255), nullable=True),
        sa.Column("mitigation_deadline", sa.Date(), nullable=True),
        sa.Column("mitigation_status", sa.String(50), nullable=False, server_default="open"),
        sa.Column("residual_likelihood", sa.Integer(), nullable=True),
        sa.Column("residual_impact", sa.Integer(), nullable=True),
        sa.Column("residual_risk_score", sa.Integer(), nullable=True),
        sa.Column("residual_risk_level", sa.String(50), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("comments", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("likelihood BETWEEN 1 AND 5", name="ck_risk_likelihood"),
        sa.CheckConstraint("impact BETWEEN 1 AND 5", name="ck_risk_impact"),
        sa.CheckConstraint("residual_likelihood BETWEEN 1 AND 5", name="ck_risk_residual_likelihood"),
        sa.CheckConstraint("residual_impact BETWEEN 1 AND 5", name="ck_risk_residual_impact"),
    )
    op.create_index("ix_risk_register_id", "risk_register", ["id"])
    op.create_index("ix_risk_register_risk_id", "risk_register", ["risk_id"], unique=True)
    op.create_index("ix_risk_register_assessment_id", "risk_register", ["assessment_id"])
    op.create_index("ix_risk_register_control_id", "risk_register", ["control_id"])
    op.create_index("ix_risk_register_risk_level", "risk_register", ["risk_level"])
    op.create_index("ix_risk_register_mitigation_status", "risk_register", ["mitigation_status"])

    op.create_table(
        "assets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "organization_id", sa.Integer(),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("asset_name", sa.String(255), nullable=False),
        sa.Column("asset_type", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("criticality", sa.String(20), nullable=False, server_default="medium"),
        sa.Column("owner", sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_assets_id", "assets", ["id"])
    op.create_index("ix_assets_organization_id", "assets", ["organization_id"])
    op.create_index("ix_assets_asset_type", "assets", ["asset_type"])

    op.create_table(
        "threat_models",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "organization_id", sa.Integer(),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("model_name", sa.String(255), nullable=False),
        sa.Column("model_version", sa.String(50), nullable=False, server_default="1.0"),
        sa.Column("system_name", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("scope", sa.Text(), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="draft"),
        *_timestamps(),
    )
    op.create_index("ix_threat_models_id", "threat_models", ["id"])
    op.create_index("ix_threat_models_organization_id", "threat_models", ["organization_id"])
    op.create_index("ix_threat_models_status", "threat_models", ["status"])

    op.create_table(
        "threats",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "threat_model_id", sa.Integer(),
            sa.ForeignKey("threat_models.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("asset_id", sa.Integer(), sa.ForeignKey("assets.id"), nullable=True),
        sa.Column("stride_category", sa.String(10), nullable=False),
        sa.Column("threat_title", sa.String(500), nullable=False),
        sa.Column("threat_description", sa.Text(), nullable=True),
        sa.Column("impact_description", sa.Text(), nullable=True),
        sa.Column("likelihood", sa.String(20), nullable=False, server_default="medium"),
        sa.Column("impact", sa.String(20), nullable=False, server_default="medium"),
        sa.Column("risk_score", sa.Integer(), nullable=False),
        sa.Column("risk_level", sa.String(50), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="identified"),
        *_timestamps(),
    )
    op.create_index("ix_threats_id", "threats", ["id"])
    op.create_index("ix_threats_threat_model_id", "threats", ["threat_model_id"])
    op.create_index("ix_threats_asset_id", "threats", ["asset_id"])
    op.create_index("ix_threats_stride_category", "threats", ["stride_category"])
    op.create_index("ix_threats_risk_level", "threats", ["risk_level"])


def downgrade() -> None:
    for table in (
        "threats",
        "threat_models",
        "assets",
        "risk_register",
        "compliance_control_assessments",
        "compliance_assessments",
        "nist_csf_controls",
        "nist_csf_categories",
        "nist_csf_functions",
        "organizations",
        "activity_logs",
        "api_keys",
    ):
        op.drop_table(table)
