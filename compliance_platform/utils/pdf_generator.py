"""
PDF report generation utilities.
"""
import logging
from io import BytesIO
from datetime import datetime, timezone
from typing import Dict, Any, List
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, PageBreak
from reportlab.lib.enums import TA_CENTER, TA_LEFT, TA_JUSTIFY
from reportlab.platypus.flowables import HRFlowable

from compliance_platform.services.compliance_report_service import NIST_FUNCTIONS, compliance_score_band

logger = logging.getLogger(__name__)


class CompliancePDFReportBuilder:
    """Builder class for NIST CSF compliance assessment PDF reports."""

    STATUS_COLORS = {
        'complete': colors.HexColor('#10b981'),
        'in_progress': colors.HexColor('#f59e0b'),
        'not_started': colors.HexColor('#ef4444'),
        'not_applicable': colors.HexColor('#6b7280'),
    }

    BAND_COLORS = {
        'good': colors.HexColor('#10b981'),
        'fair': colors.HexColor('#f59e0b'),
        'weak': colors.HexColor('#fb923c'),
        'poor': colors.HexColor('#ef4444'),
    }

    PRIORITY_HEX = {
        'High': '#ef4444',
        'Medium': '#f59e0b',
        'Low': '#10b981',
    }

    def __init__(self, report: Dict[str, Any]):
        """
        Initialize PDF report builder.

        Args:
            report: Aggregate produced by build_compliance_report
        """
        self.report = report
        self.assessment = report.get('assessment', {})
        self.buffer = BytesIO()
        self.story = []
        self._setup_document()
        self._setup_styles()

    def _setup_document(self):
        title = self.assessment.get('assessment_name', 'Assessment')
        self.doc = SimpleDocTemplate(
            self.buffer,
            pagesize=letter,
            topMargin=0.75*inch,
            bottomMargin=0.75*inch,
            leftMargin=0.75*inch,
            rightMargin=0.75*inch,
            title=f"NIST CSF Compliance Report - {title}",
            author=self.report.get('organization_name') or '',
            subject='Cybersecurity Framework Compliance Assessment',
        )

    def _setup_styles(self):
        styles = getSampleStyleSheet()

        self.title_style = ParagraphStyle(
            'TitleStyle',
            parent=styles['Heading1'],
            fontSize=26,
            textColor=colors.HexColor('#1e40af'),
            spaceAfter=12,
            alignment=TA_CENTER,
            fontName='Helvetica-Bold',
            leading=32
        )

        self.subtitle_style = ParagraphStyle(
            'SubtitleStyle',
            parent=styles['Normal'],
            fontSize=18,
            textColor=colors.HexColor('#2563eb'),
            alignment=TA_CENTER,
            spaceAfter=15,
            leading=22
        )

        self.section_style = ParagraphStyle(
            'SectionStyle',
            parent=styles['Heading2'],
            fontSize=18,
            textColor=colors.HexColor('#1e40af'),
            spaceAfter=12,
            spaceBefore=10,
            fontName='Helvetica-Bold'
        )

        self.function_style = ParagraphStyle(
            'FunctionStyle',
            parent=styles['Heading3'],
            fontSize=14,
            textColor=colors.HexColor('#1e40af'),
            spaceBefore=12,
            spaceAfter=6,
            fontName='Helvetica-Bold'
        )

        self.category_style = ParagraphStyle(
            'CategoryStyle',
            parent=styles['Normal'],
            fontSize=12,
            textColor=colors.HexColor('#2563eb'),
            spaceBefore=8,
            spaceAfter=4,
            fontName='Helvetica-Bold'
        )

        self.score_style = ParagraphStyle(
            'ScoreStyle',
            parent=styles['Normal'],
            fontSize=40,
            alignment=TA_CENTER,
            fontName='Helvetica-Bold',
            leading=46,
            spaceAfter=6
        )

        self.normal_style = ParagraphStyle(
            'NormalStyle',
            parent=styles['Normal'],
            fontSize=10,
            leading=14,
            alignment=TA_LEFT
        )

        self.detail_style = ParagraphStyle(
            'DetailStyle',
            parent=self.normal_style,
            fontSize=9,
            textColor=colors.HexColor('#6b7280'),
            leftIndent=18
        )

        self.finding_style = ParagraphStyle(
            'FindingStyle',
            parent=self.normal_style,
            fontSize=10,
            alignment=TA_JUSTIFY,
            leftIndent=12,
            spaceAfter=6
        )

        self.footer_style = ParagraphStyle(
            'FooterStyle',
            parent=styles['Normal'],
            fontSize=9,
            textColor=colors.HexColor('#95a5a6'),
            alignment=TA_CENTER,
            spaceBefore=20
        )

    def _band_color(self, score: int):
        return self.BAND_COLORS[compliance_score_band(score)]

    def _add_title_page(self):
        self.story.append(Spacer(1, 1.2*inch))
        self.story.append(Paragraph("NIST Cybersecurity Framework", self.title_style))
        self.story.append(Paragraph("Compliance Assessment Report", self.subtitle_style))
        self.story.append(Spacer(1, 0.4*inch))
        self.story.append(HRFlowable(width="100%", thickness=2, color=colors.HexColor('#2563eb'), spaceBefore=5, spaceAfter=15))

        report_date = datetime.now(timezone.utc).strftime("%B %d, %Y")
        status = (self.assessment.get('status') or 'draft').replace('_', ' ').upper()
        rows = [
            ["Organization:", self.report.get('organization_name') or 'N/A'],
            ["Assessment:", self.assessment.get('assessment_name') or 'N/A'],
            ["Framework Version:", self.assessment.get('framework_version') or 'NIST CSF v1.1'],
            ["Report Date:", report_date],
            ["Status:", status],
        ]
        table = Table(rows, colWidths=[2.0*inch, 3.8*inch])
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, -1), colors.HexColor('#eff6ff')),
            ('BOX', (0, 0), (-1, -1), 1, colors.HexColor('#2563eb')),
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('TEXTCOLOR', (0, 0), (0, -1), colors.HexColor('#1e40af')),
            ('TEXTCOLOR', (1, 0), (1, -1), colors.HexColor('#374151')),
            ('FONTSIZE', (0, 0), (-1, -1), 12),
            ('TOPPADDING', (0, 0), (-1, -1), 10),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 10),
            ('LEFTPADDING', (0, 0), (-1, -1), 14),
        ]))
        self.story.append(table)
        self.story.append(PageBreak())

    def _add_executive_summary(self):
        stats = self.report['stats']
        self.story.append(Paragraph("Executive Summary", self.section_style))

        overall = stats['overall_score']
        score_style = ParagraphStyle('OverallScore', parent=self.score_style, textColor=self._band_color(overall))
        self.story.append(Paragraph(f"{overall}%", score_style))
        self.story.append(Paragraph("<para alignment='center'>Overall Compliance</para>", self.normal_style))
        self.story.append(Spacer(1, 0.15*inch))

        counts = (
            f"Total Controls: {stats['total_controls']} | "
            f"Complete: {stats['complete']} | "
            f"In Progress: {stats['in_progress']} | "
            f"Not Started: {stats['not_started']} | "
            f"Not Applicable: {stats['not_applicable']}"
        )
        self.story.append(Paragraph(f"<para alignment='center'>{counts}</para>", self.normal_style))
        self.story.append(Spacer(1, 0.3*inch))

        self.story.append(Paragraph("Compliance by NIST CSF Function", self.function_style))
        data = [["Function", "Controls", "Complete", "In Progress", "Score"]]
        for entry in self.report['function_stats']:
            data.append([
                f"{entry['name']} ({entry['code']})",
                str(entry['total']),
                str(entry['complete']),
                str(entry['in_progress']),
                f"{entry['score']}%",
            ])
        table = Table(data, colWidths=[2.2*inch, 1.0*inch, 1.0*inch, 1.1*inch, 0.9*inch])
        style = [
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#1e40af')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('ALIGN', (1, 0), (-1, -1), 'CENTER'),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#9ca3af')),
            ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#f3f4f6')]),
        ]
        for row_index, entry in enumerate(self.report['function_stats'], start=1):
            style.append(('TEXTCOLOR', (4, row_index), (4, row_index), self._band_color(entry['score'])))
            style.append(('FONTNAME', (4, row_index), (4, row_index), 'Helvetica-Bold'))
        table.setStyle(TableStyle(style))
        self.story.append(table)
        self.story.append(Spacer(1, 0.3*inch))

        self.story.append(Paragraph("Key Findings", self.function_style))
        for index, finding in enumerate(self.report['key_findings'], start=1):
            self.story.append(Paragraph(f"{index}. {escape(finding)}", self.finding_style))

        risk_summary = self.report.get('risk_summary')
        if risk_summary:
            by_level = risk_summary['by_level']
            self.story.append(Paragraph("Risk Register", self.function_style))
            self.story.append(Paragraph(
                f"{risk_summary['total_risks']} risks recorded for this assessment "
                f"(Critical: {by_level['critical']} | High: {by_level['high']} | "
                f"Medium: {by_level['medium']} | Low: {by_level['low']}).",
                self.finding_style
            ))
        self.story.append(PageBreak())

    def _add_control_item(self, control: Dict[str, Any]):
        status = control['assessment_status']
        status_hex = self.STATUS_COLORS.get(status, self.STATUS_COLORS['not_started']).hexval()[2:]
        status_text = status.replace('_', ' ').upper()
        self.story.append(Paragraph(
            f"<b>{escape(control['subcategory_id'])}</b> {escape(control['subcategory_name'])} "
            f"<font color='#{status_hex}'><b>[{status_text}]</b></font>",
            self.normal_style
        ))

        comments = (control.get('comments') or '').strip()
        if comments:
            self.story.append(Paragraph(f"<i>Comments: {escape(comments)}</i>", self.detail_style))

        evidence_count = control.get('evidence_count') or 0
        if evidence_count > 0:
            plural = 's' if evidence_count > 1 else ''
            self.story.append(Paragraph(f"{evidence_count} evidence file{plural} attached", self.detail_style))
        self.story.append(Spacer(1, 0.06*inch))

    def _add_detailed_results(self):
        self.story.append(Paragraph("Detailed Assessment Results", self.section_style))

        grouped = self.report['grouped_controls']
        if not grouped:
            self.story.append(Paragraph("No controls have been assessed yet.", self.normal_style))

        for function_code, categories in grouped.items():
            function_name = NIST_FUNCTIONS.get(function_code, function_code)
            self.story.append(Paragraph(f"{function_name} ({function_code})", self.function_style))
            for category_name, controls in categories.items():
                self.story.append(Paragraph(escape(category_name), self.category_style))
                for control in controls:
                    self._add_control_item(control)
        self.story.append(PageBreak())

    def _add_evidence_summary(self):
        self.story.append(Paragraph("Evidence Summary", self.section_style))
        summary = self.report['evidence_summary']

        if summary['total_files'] == 0:
            self.story.append(Paragraph(
                "<i>No evidence files have been attached to this assessment.</i>",
                self.normal_style
            ))
        else:
            self.story.append(Paragraph(f"Total Evidence Files: {summary['total_files']}", self.normal_style))
            self.story.append(Paragraph(f"Controls with Evidence: {summary['controls_with_evidence']}", self.normal_style))
            self.story.append(Spacer(1, 0.15*inch))
            for item in summary['by_control']:
                plural = 's' if item['evidence_count'] > 1 else ''
                self.story.append(Paragraph(
                    f"<b>{escape(item['subcategory_id'])}</b> - {escape(item['subcategory_name'])}: "
                    f"{item['evidence_count']} file{plural}",
                    self.finding_style
                ))
        self.story.append(PageBreak())

    def _add_recommendations(self):
        self.story.append(Paragraph("Recommendations", self.section_style))
        recommendations = self.report['recommendations']

        if not recommendations:
            self.story.append(Paragraph(
                "<font color='#059669'><b>Congratulations! All controls are complete. "
                "No recommendations at this time.</b></font>",
                self.normal_style
            ))
            return

        self.story.append(Paragraph(
            "Based on the assessment results, the following actions are recommended:",
            self.normal_style
        ))
        self.story.append(Spacer(1, 0.15*inch))
        for index, rec in enumerate(recommendations, start=1):
            priority_hex = self.PRIORITY_HEX.get(rec['priority'], '#374151')
            self.story.append(Paragraph(
                f"<font color='{priority_hex}'><b>{index}. [{rec['priority']} Priority]</b></font> "
                f"{escape(rec['title'])}",
                self.normal_style
            ))
            self.story.append(Paragraph(escape(rec['description']), self.detail_style))
            self.story.append(Spacer(1, 0.12*inch))

    def _add_footer(self):
        self.story.append(Spacer(1, 0.3*inch))
        self.story.append(HRFlowable(width="100%", thickness=1, color=colors.HexColor('#ecf0f1'), spaceBefore=10, spaceAfter=10))
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
        self.story.append(Paragraph(f"Generated by Compliance Platform | {timestamp}", self.footer_style))

    @staticmethod
    def _draw_page_number(canvas, doc):
        canvas.saveState()
        canvas.setFont('Helvetica', 9)
        canvas.setFillColor(colors.HexColor('#6b7280'))
        canvas.drawCentredString(letter[0] / 2, 0.5*inch, f"Page {doc.page}")
        canvas.restoreState()

    def build(self) -> bytes:
        """
        Build the complete PDF report and return PDF bytes.

        Returns:
            bytes: Raw PDF bytes
        """
        self._add_title_page()
        self._add_executive_summary()
        self._add_detailed_results()
        self._add_evidence_summary()
        self._add_recommendations()
        self._add_footer()

        try:
            self.doc.build(
                self.story,
                onFirstPage=self._draw_page_number,
                onLaterPages=self._draw_page_number,
            )
            return self.buffer.getvalue()
        except Exception as e:
            logger.error(f"Error generating PDF: {e}", exc_info=True)
            raise
        finally:
            self.buffer.close()


def generate_compliance_report_pdf(report: Dict[str, Any]) -> bytes:
    """
    Generate a PDF for a compliance report aggregate.

    Args:
        report: Dictionary from ComplianceReportService.build

    Returns:
        bytes: Raw PDF bytes
    """
    return CompliancePDFReportBuilder(report).build()
