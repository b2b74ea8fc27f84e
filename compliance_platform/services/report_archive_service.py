"""
Stored compliance reports.

Generating a report renders the compliance PDF and keeps it with its
metadata so it can be listed and downloaded again later.
"""
import logging
import re
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, undefer

from compliance_platform.core.exceptions import NotFoundError
from compliance_platform.models.compliance_report import ComplianceReport, ReportType
from compliance_platform.services.compliance_report_service import ComplianceReportService
from compliance_platform.utils.pdf_generator import generate_compliance_report_pdf

logger = logging.getLogger(__name__)


def report_filename(report: Dict[str, Any], assessment_id: int) -> str:
    """File name for a compliance PDF, e.g. NIST_CSF_Report_FY26_CSF_Baseline.pdf."""
    name = report["assessment"].get("assessment_name") or f"assessment-{assessment_id}"
    safe_name = re.sub(r"[^A-Za-z0-9_-]+", "_", name).strip("_") or f"assessment-{assessment_id}"
    return f"NIST_CSF_Report_{safe_name}.pdf"


class ReportArchiveService:
    """Service for generating, storing and retrieving compliance reports."""

    def __init__(self, db: Session):
        self.db = db

    def generate(self, assessment_id: int, generated_by: Optional[int] = None) -> ComplianceReport:
        report = ComplianceReportService(self.db).build(assessment_id)
        pdf_bytes = generate_compliance_report_pdf(report)

        stored = ComplianceReport(
            assessment_id=assessment_id,
            report_type=ReportType.COMPLIANCE_REPORT,
            report_format="pdf",
            file_name=report_filename(report, assessment_id),
            file_size=len(pdf_bytes),
            file_data=pdf_bytes,
            overall_score=report["stats"]["overall_score"],
            generated_by=generated_by,
        )
        self.db.add(stored)
        self.db.commit()
        self.db.refresh(stored)
        logger.info(
            f"Stored compliance report: id={stored.id}, assessment_id={assessment_id}, size={stored.file_size}"
        )
        return stored

    def get_all(self, assessment_id: int) -> List[ComplianceReport]:
        """Reports of one assessment, newest first."""
        return (
            self.db.query(ComplianceReport)
            .filter(ComplianceReport.assessment_id == assessment_id)
            .order_by(ComplianceReport.generated_at.desc(), ComplianceReport.id.desc())
            .all()
        )

    def get_by_id(self, report_id: int, with_file: bool = False) -> ComplianceReport:
        query = self.db.query(ComplianceReport)
        if with_file:
            query = query.options(undefer(ComplianceReport.file_data))
        stored = query.filter(ComplianceReport.id == report_id).first()
        if not stored:
            raise NotFoundError(f"Report with id {report_id} not found")
        return stored

    def delete(self, report_id: int) -> ComplianceReport:
        stored = self.get_by_id(report_id)
        self.db.delete(stored)
        self.db.commit()
        logger.info(f"Deleted compliance report: id={report_id}")
        return stored
