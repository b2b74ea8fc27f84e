"""
Stored compliance report endpoints.
"""
import logging
from io import BytesIO
from fastapi import APIRouter, Depends, HTTPException, status, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from compliance_platform.core.database import get_db
from compliance_platform.core.auth import require_role, APIClient
from compliance_platform.core.exceptions import ComplianceError
from compliance_platform.schemas.common import envelope
from compliance_platform.schemas.report import ComplianceReportResponse
from compliance_platform.services.activity_service import log_activity, ActivityAction, ResourceType
from compliance_platform.services.report_archive_service import ReportArchiveService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{report_id}")
async def get_report(
    report_id: int,
    _client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    try:
        return envelope(ComplianceReportResponse.model_validate(ReportArchiveService(db).get_by_id(report_id)))
    except ComplianceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{report_id}/download")
async def download_stored_report(
    report_id: int,
    request: Request,
    client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    """
    Download a stored report.

    Returns:
        StreamingResponse with the stored PDF
    """
    try:
        stored = ReportArchiveService(db).get_by_id(report_id, with_file=True)

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.REPORT_DOWNLOAD,
            resource_type=ResourceType.COMPLIANCE_REPORT,
            resource_id=report_id,
            details={"assessment_id": stored.assessment_id},
            request=request,
        )

        return StreamingResponse(
            BytesIO(stored.file_data),
            media_type="application/pdf",
            headers={"Content-Disposition": f'attachment; filename="{stored.file_name}"'},
        )
    except ComplianceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{report_id}")
async def delete_report(
    report_id: int,
    request: Request,
    client: APIClient = Depends(require_role("security_analyst")),
    db: Session = Depends(get_db),
):
    try:
        service = ReportArchiveService(db)
        removed = ComplianceReportResponse.model_validate(service.get_by_id(report_id))
        service.delete(report_id)

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.REPORT_DELETE,
            resource_type=ResourceType.COMPLIANCE_REPORT,
            resource_id=report_id,
            details={"assessment_id": removed.assessment_id, "file_name": removed.file_name},
            request=request,
        )

        return envelope(removed, message="Report deleted successfully")
    except ComplianceError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error deleting report {report_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete report"
        )
