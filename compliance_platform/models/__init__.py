"""Database models."""
from compliance_platform.models.api_key import APIKey
from compliance_platform.models.activity_log import ActivityLog
from compliance_platform.models.organization import Organization
from compliance_platform.models.nist_csf import CsfFunction, CsfCategory, CsfControl
from compliance_platform.models.assessment import Assessment
from compliance_platform.models.control_assessment import ControlAssessment
from compliance_platform.models.compliance_report import ComplianceReport
from compliance_platform.models.risk import Risk
from compliance_platform.models.threat import Asset, ThreatModel, Threat, ThreatMitigation

__all__ = [
    "APIKey",
    "ActivityLog",
    "Organization",
    "CsfFunction",
    "CsfCategory",
    "CsfControl",
    "Assessment",
    "ControlAssessment",
    "ComplianceReport",
    "Risk",
    "Asset",
    "ThreatModel",
    "Threat",
    "ThreatMitigation",
]
