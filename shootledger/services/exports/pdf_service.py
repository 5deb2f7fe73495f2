"""
PDF Report Service

Fixed-layout PDF documents built with reportlab from analytics output:

- Daily cost report for one project date
- Project wrap report (budget vs actual, payment methods, reimbursables)

Purely a formatting consumer: every number comes from ReportEngine,
the store is read only for display names.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from io import BytesIO
from pathlib import Path
from typing import Optional, Union
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import (
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from shootledger.analytics import ReportEngine
from shootledger.audit.logger import AuditLogger, get_logger
from shootledger.config import Settings


_TABLE_STYLE = TableStyle([
    ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
    ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
])


def _amount(value: Decimal) -> str:
    return f"{value:,.2f}"


def _signed(value) -> str:
    return f"+{value:,.1f}" if value >= 0 else f"{value:,.1f}"


class PdfReportService:
    """Renders report PDFs to bytes or to a file path."""

    def __init__(
        self,
        reports: ReportEngine,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[Settings] = None,
    ):
        self._reports = reports
        self._store = reports.store
        self._audit = audit_logger
        self._settings = settings or reports.store.settings
        self._logger = get_logger(__name__)

    # =========================================================================
    # DAILY COST REPORT
    # =========================================================================

    def render_daily_cost_report(self, project_id: str, report_date: Union[date, str]) -> bytes:
        """
        Raises:
            NotFoundError: If the project does not exist
        """
        dcr = self._reports.daily_cost_report(project_id, report_date)
        project = self._store.get_project(project_id)
        currency = dcr.currency
        styles = getSampleStyleSheet()

        story = [
            Paragraph("DAILY COST REPORT", styles["Title"]),
            Spacer(1, 12),
            Paragraph(f"Project: {escape(project.title)}", styles["Normal"]),
            Paragraph(f"Date: {dcr.date.isoformat()}", styles["Normal"]),
            Paragraph(f"Currency: {currency}", styles["Normal"]),
            Spacer(1, 16),
            Paragraph("Summary", styles["Heading2"]),
            Paragraph(f"Total Spent Today: {currency} {_amount(dcr.total_spent)}", styles["Normal"]),
            Paragraph(f"Number of Expenses: {len(dcr.expenses)}", styles["Normal"]),
            Paragraph(f"Petty Cash Transactions: {len(dcr.petty_cash_txns)}", styles["Normal"]),
            Spacer(1, 16),
        ]

        if dcr.expenses_by_department:
            story.append(Paragraph("Department Breakdown", styles["Heading2"]))
            story.append(Spacer(1, 8))
            data = [["Department", "Amount", "Count"]]
            for row in dcr.expenses_by_department:
                data.append([row.department_name, f"{currency} {_amount(row.amount)}", row.count])
            story.append(self._table(data, [240, 140, 80]))
            story.append(Spacer(1, 16))

        if dcr.expenses:
            departments = {d.id: d.name for d in self._store.get_departments(project_id)}
            vendors = {v.id: v.name for v in self._store.get_vendors()}

            story.append(Paragraph("Expense Details", styles["Heading2"]))
            story.append(Spacer(1, 8))
            for expense in dcr.expenses:
                story.append(Paragraph(f"<b>{escape(expense.description)}</b>", styles["Normal"]))
                detail = (
                    f"Department: {escape(departments.get(expense.department_id, 'Unknown'))} | "
                    f"Amount: {currency} {_amount(expense.amount)} | "
                    f"Method: {expense.payment_method.value}"
                )
                story.append(Paragraph(detail, styles["Normal"]))
                if expense.vendor_id:
                    story.append(Paragraph(f"Vendor: {escape(vendors.get(expense.vendor_id, 'Unknown'))}", styles["Normal"]))
                if expense.reimbursable:
                    story.append(Paragraph("Reimbursable: Yes", styles["Normal"]))
                story.append(Spacer(1, 6))

        pdf = self._build(story)
        self._generated("daily_cost_report", project_id, len(pdf))
        return pdf

    def write_daily_cost_report(
        self,
        project_id: str,
        report_date: Union[date, str],
        path: Union[str, Path],
    ) -> Path:
        return self._write(path, self.render_daily_cost_report(project_id, report_date))

    # =========================================================================
    # WRAP REPORT
    # =========================================================================

    def render_wrap_report(self, project_id: str) -> bytes:
        """
        Raises:
            NotFoundError: If the project does not exist
        """
        summary = self._reports.project_summary(project_id)
        payments = self._reports.payment_method_breakdown(project_id)
        reimbursables = self._reports.reimbursable_expenses(project_id)
        project = self._store.get_project(project_id)
        currency = summary.currency
        styles = getSampleStyleSheet()

        if summary.variance_percent >= 0:
            variance_text = f"Over Budget: {summary.variance_percent:.1f}%"
        else:
            variance_text = f"Under Budget: {abs(summary.variance_percent):.1f}%"

        story = [
            Paragraph("PROJECT WRAP REPORT", styles["Title"]),
            Spacer(1, 12),
            Paragraph(f"Project: {escape(project.title)}", styles["Normal"]),
            Paragraph(
                f"Period: {project.start_date or 'N/A'} to {project.end_date or 'N/A'}",
                styles["Normal"],
            ),
            Paragraph(f"Currency: {currency}", styles["Normal"]),
            Spacer(1, 16),
            Paragraph("Financial Summary", styles["Heading2"]),
            Paragraph(f"Total Budget: {currency} {_amount(summary.total_budget)}", styles["Normal"]),
            Paragraph(f"Total Spent: {currency} {_amount(summary.total_spent)}", styles["Normal"]),
            Paragraph(f"Remaining Budget: {currency} {_amount(summary.remaining_budget)}", styles["Normal"]),
            Paragraph(variance_text, styles["Normal"]),
            Paragraph(f"Total Expenses: {summary.expense_count}", styles["Normal"]),
            Spacer(1, 16),
            Paragraph("Department Analysis", styles["Heading2"]),
            Spacer(1, 8),
        ]

        data = [["Department", "Budget", "Actual", "Variance", "%"]]
        for dept in summary.department_summaries:
            data.append([
                dept.department_name,
                _amount(dept.budget_amount),
                _amount(dept.actual_amount),
                _signed(dept.variance),
                f"{_signed(dept.variance_percent)}%",
            ])
        story.append(self._table(data, [170, 90, 90, 90, 60]))
        story.append(Spacer(1, 16))

        if payments:
            paid_total = sum((p.amount for p in payments), Decimal("0"))
            story.append(Paragraph("Payment Methods", styles["Heading2"]))
            for payment in payments:
                share = float(payment.amount / paid_total * 100) if paid_total else 0.0
                story.append(Paragraph(
                    f"{payment.payment_method.value}: {currency} {_amount(payment.amount)} ({share:.1f}%)",
                    styles["Normal"],
                ))
            story.append(Spacer(1, 16))

        if reimbursables:
            owed = sum((e.amount for e in reimbursables), Decimal("0"))
            story.append(Paragraph("Reimbursable Expenses", styles["Heading2"]))
            story.append(Paragraph(
                f"{len(reimbursables)} expense(s) totalling {currency} {_amount(owed)}",
                styles["Normal"],
            ))

        pdf = self._build(story)
        self._generated("wrap_report", project_id, len(pdf))
        return pdf

    def write_wrap_report(self, project_id: str, path: Union[str, Path]) -> Path:
        return self._write(path, self.render_wrap_report(project_id))

    # =========================================================================
    # LAYOUT
    # =========================================================================

    def _build(self, story: list) -> bytes:
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=40,
            rightMargin=40,
            topMargin=40,
            bottomMargin=50,
        )
        doc.build(story, onFirstPage=self._footer, onLaterPages=self._footer)
        return buffer.getvalue()

    def _footer(self, canvas, doc) -> None:
        generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
        width, _ = doc.pagesize
        canvas.saveState()
        canvas.setFont("Helvetica", 8)
        canvas.drawString(doc.leftMargin, 25, f"Generated on {generated}")
        canvas.drawRightString(width - doc.rightMargin, 25, self._settings.reports.pdf_footer_label)
        canvas.restoreState()

    @staticmethod
    def _table(data: list, col_widths: list[int]) -> Table:
        table = Table(data, colWidths=col_widths)
        table.setStyle(_TABLE_STYLE)
        return table

    @staticmethod
    def _write(path: Union[str, Path], pdf: bytes) -> Path:
        output_path = Path(path)
        output_path.write_bytes(pdf)
        return output_path

    def _generated(self, report_type: str, project_id: str, size: int) -> None:
        self._logger.info("pdf_rendered", report_type=report_type, project_id=project_id, bytes=size)
        if self._audit:
            self._audit.log_report(report_type, project_id, "pdf")
