"""
Activity logging service for audit trail.
"""
import logging
from typing import Optional, Dict, Any
from sqlalchemy.orm import Session
from fastapi import Request

from compliance_platform.models.activity_log import ActivityLog
from compliance_platform.core.auth import APIClient

logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    client: APIClient,
    action: str,
    resource_type: Optional[str] = None,
    resource_id: Optional[int] = None,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> ActivityLog:
    """
    Log an activity to the audit trail.

    Args:
        db: Database session
        client: Authenticated API client
        action: Action name (see ActivityAction)
        resource_type: Type of resource affected (see ResourceType)
        resource_id: ID of the affected resource
        details: Additional JSON details about the action
        request: FastAPI request object (for IP/user agent extraction)

    Returns:
        Created ActivityLog record
    """
    ip_address = None
    user_agent = None
    if request:
        if request.client:
            ip_address = request.client.host
        # Behind a proxy the first X-Forwarded-For hop is the caller
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            ip_address = forwarded_for.split(",")[0].strip()
        user_agent = request.headers.get("User-Agent")

    activity = ActivityLog(
        actor_id=client.api_key_id,
        actor_source=client.source,
        actor_role=client.role,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
    )

    db.add(activity)
    db.commit()
    db.refresh(activity)

    logger.debug(f"Logged activity: {action} by {client.role} ({client.source})")

    return activity


class ActivityAction:
    """Constants for activity actions."""
    API_KEY_CREATE = "api_key_create"
    API_KEY_UPDATE = "api_key_update"
    API_KEY_DEACTIVATE = "api_key_deactivate"
    ORGANIZATION_CREATE = "organization_create"
    ASSESSMENT_CREATE = "assessment_create"
    ASSESSMENT_UPDATE = "assessment_update"
    ASSESSMENT_DELETE = "assessment_delete"
    CONTROL_ASSESS = "control_assess"
    CONTROL_ASSESSMENT_DELETE = "control_assessment_delete"
    CONTROL_BULK_ASSESS = "control_bulk_assess"
    RISK_CREATE = "risk_create"
    RISK_UPDATE = "risk_update"
    RISK_DELETE = "risk_delete"
    RISK_EXPORT = "risk_export"
    REPORT_EXPORT = "report_export"
    REPORT_GENERATE = "report_generate"
    REPORT_DOWNLOAD = "report_download"
    REPORT_DELETE = "report_delete"
    ASSET_CREATE = "asset_create"
    ASSET_DELETE = "asset_delete"
    THREAT_MODEL_CREATE = "threat_model_create"
    THREAT_CREATE = "threat_create"
    THREAT_UPDATE = "threat_update"
    MITIGATION_CREATE = "mitigation_create"
    MITIGATION_UPDATE = "mitigation_update"
    MITIGATION_DELETE = "mitigation_delete"


class ResourceType:
    """Constants for resource types."""
    API_KEY = "api_key"
    ORGANIZATION = "organization"
    ASSESSMENT = "assessment"
    CONTROL_ASSESSMENT = "control_assessment"
    RISK = "risk"
    ASSET = "asset"
    THREAT_MODEL = "threat_model"
    THREAT = "threat"
    MITIGATION = "mitigation"
    COMPLIANCE_REPORT = "compliance_report"
