"""
Compliance assessment endpoints, including the compliance report.
"""
import logging
from io import BytesIO
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from compliance_platform.core.database import get_db
from compliance_platform.core.auth import require_role, APIClient
from compliance_platform.core.exceptions import ComplianceError
from compliance_platform.models.assessment import AssessmentStatus
from compliance_platform.schemas.common import envelope
from compliance_platform.schemas.assessment import (
    AssessmentCreateRequest,
    AssessmentUpdateRequest,
    AssessmentResponse,
)
from compliance_platform.schemas.report import ComplianceReportResponse
from compliance_platform.services.activity_service import log_activity, ActivityAction, ResourceType
from compliance_platform.services.assessment_service import AssessmentService
from compliance_platform.services.compliance_report_service import ComplianceReportService
from compliance_platform.services.report_archive_service import ReportArchiveService, report_filename
from compliance_platform.utils.pdf_generator import generate_compliance_report_pdf

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def list_assessments(
    organization_id: Optional[int] = Query(None),
    status_filter: Optional[AssessmentStatus] = Query(None, alias="status"),
    _client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    assessments = AssessmentService(db).get_all(organization_id=organization_id, status=status_filter)
    return envelope(
        [AssessmentResponse.model_validate(assessment) for assessment in assessments],
        count=len(assessments),
    )


@router.get("/{assessment_id}")
async def get_assessment(
    assessment_id: int,
    _client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    try:
        return envelope(AssessmentResponse.model_validate(AssessmentService(db).get_by_id(assessment_id)))
    except ComplianceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_assessment(
    payload: AssessmentCreateRequest,
    request: Request,
    client: APIClient = Depends(require_role("operator")),
    db: Session = Depends(get_db),
):
    try:
        assessment = AssessmentService(db).create(payload.model_dump(exclude_unset=True))

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.ASSESSMENT_CREATE,
            resource_type=ResourceType.ASSESSMENT,
            resource_id=assessment.id,
            details={"organization_id": assessment.organization_id, "name": assessment.assessment_name},
            request=request,
        )

        return envelope(AssessmentResponse.model_validate(assessment), message="Assessment created successfully")
    except ComplianceError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error creating assessment: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create assessment"
        )


@router.put("/{assessment_id}")
async def update_assessment(
    assessment_id: int,
    payload: AssessmentUpdateRequest,
    request: Request,
    client: APIClient = Depends(require_role("operator")),
    db: Session = Depends(get_db),
):
    try:
        updates = payload.model_dump(exclude_unset=True)
        assessment = AssessmentService(db).update(assessment_id, updates)

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.ASSESSMENT_UPDATE,
            resource_type=ResourceType.ASSESSMENT,
            resource_id=assessment_id,
            details={"fields": sorted(updates.keys())},
            request=request,
        )

        return envelope(AssessmentResponse.model_validate(assessment), message="Assessment updated successfully")
    except ComplianceError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error updating assessment {assessment_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update assessment"
        )


@router.delete("/{assessment_id}")
async def delete_assessment(
    assessment_id: int,
    request: Request,
    client: APIClient = Depends(require_role("security_analyst")),
    db: Session = Depends(get_db),
):
    """
    Delete an assessment and its control assessments.

    Responds 409 while risk register entries still reference it.
    """
    try:
        service = AssessmentService(db)
        removed = AssessmentResponse.model_validate(service.get_by_id(assessment_id))
        service.delete(assessment_id)

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.ASSESSMENT_DELETE,
            resource_type=ResourceType.ASSESSMENT,
            resource_id=assessment_id,
            details={"name": removed.assessment_name},
            request=request,
        )

        return envelope(removed, message="Assessment deleted successfully")
    except ComplianceError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error deleting assessment {assessment_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete assessment"
        )


@router.get("/{assessment_id}/report/summary")
async def get_report_summary(
    assessment_id: int,
    _client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    """JSON form of the compliance report aggregate."""
    try:
        return envelope(ComplianceReportService(db).build(assessment_id))
    except ComplianceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error building report summary for assessment {assessment_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to build compliance report"
        )


@router.get("/{assessment_id}/report")
async def download_report(
    assessment_id: int,
    request: Request,
    client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    """
    Generate and download the compliance assessment PDF.

    Returns:
        StreamingResponse with PDF content
    """
    try:
        report = ComplianceReportService(db).build(assessment_id)
        pdf_bytes = generate_compliance_report_pdf(report)
        filename = report_filename(report, assessment_id)

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.REPORT_EXPORT,
            resource_type=ResourceType.ASSESSMENT,
            resource_id=assessment_id,
            details={"overall_score": report["stats"]["overall_score"]},
            request=request,
        )

        logger.info(f"Generated compliance PDF for assessment {assessment_id}")

        return StreamingResponse(
            BytesIO(pdf_bytes),
            media_type="application/pdf",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    except ComplianceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error generating PDF for assessment {assessment_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate compliance report"
        )


@router.post("/{assessment_id}/reports", status_code=status.HTTP_201_CREATED)
async def generate_stored_report(
    assessment_id: int,
    request: Request,
    client: APIClient = Depends(require_role("operator")),
    db: Session = Depends(get_db),
):
    """Generate the compliance PDF and keep it for later download."""
    try:
        stored = ReportArchiveService(db).generate(assessment_id, generated_by=client.api_key_id)

        log_activity(
            db=db,
            client=client,
            action=ActivityAction.REPORT_GENERATE,
            resource_type=ResourceType.COMPLIANCE_REPORT,
            resource_id=stored.id,
            details={"assessment_id": assessment_id, "file_size": stored.file_size},
            request=request,
        )

        return envelope(ComplianceReportResponse.model_validate(stored), message="Report generated successfully")
    except ComplianceError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error storing report for assessment {assessment_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate compliance report"
        )


@router.get("/{assessment_id}/reports")
async def list_stored_reports(
    assessment_id: int,
    _client: APIClient = Depends(require_role("viewer")),
    db: Session = Depends(get_db),
):
    """Stored reports of an assessment, newest first."""
    try:
        AssessmentService(db).get_by_id(assessment_id)
        reports = ReportArchiveService(db).get_all(assessment_id)
        return envelope([ComplianceReportResponse.model_validate(item) for item in reports], count=len(reports))
    except ComplianceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
