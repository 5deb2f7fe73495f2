"""
Tests for PDF rendering.

Only the envelope is checked (PDF header, non-trivial size, audit);
layout is reportlab's business.
"""

import pytest
from datetime import date

from shootledger.analytics import ReportEngine
from shootledger.models.audit import AuditEventType
from shootledger.services.exports import PdfReportService
from shootledger.services.storage import NotFoundError


TODAY = date(2024, 1, 15)


@pytest.fixture
def demo_pdf(demo_store, audit_logger):
    store, project = demo_store
    return PdfReportService(ReportEngine(store), audit_logger), project


class TestPdfReports:
    """Tests for the daily cost and wrap report PDFs."""

    def test_daily_cost_report(self, demo_pdf):
        pdf, project = demo_pdf
        content = pdf.render_daily_cost_report(project.id, TODAY)
        assert content[:4] == b"%PDF"
        assert len(content) > 1000

    def test_wrap_report(self, demo_pdf):
        pdf, project = demo_pdf
        assert pdf.render_wrap_report(project.id)[:4] == b"%PDF"

    def test_empty_project_renders(self, reports, project):
        pdf = PdfReportService(reports)
        assert pdf.render_daily_cost_report(project.id, TODAY)[:4] == b"%PDF"
        assert pdf.render_wrap_report(project.id)[:4] == b"%PDF"

    def test_markup_in_user_text_is_escaped(self, store, reports):
        project = store.add_project(title="Tom & Jerry <Redux>")
        pdf = PdfReportService(reports)
        assert pdf.render_wrap_report(project.id)[:4] == b"%PDF"

    def test_write_to_file(self, demo_pdf, tmp_path):
        pdf, project = demo_pdf
        path = pdf.write_wrap_report(project.id, tmp_path / "wrap.pdf")
        assert path.exists()
        assert path.read_bytes()[:4] == b"%PDF"

        daily = pdf.write_daily_cost_report(project.id, "2024-01-15", str(tmp_path / "dcr.pdf"))
        assert daily.read_bytes()[:4] == b"%PDF"

    def test_rendering_is_audited(self, demo_pdf, audit_storage):
        pdf, project = demo_pdf
        pdf.render_wrap_report(project.id)
        event = audit_storage.get_recent_events(limit=1)[0]
        assert event.event_type == AuditEventType.REPORT_GENERATED
        assert event.entity_id == project.id
        assert event.details == {"report_type": "wrap_report", "format": "pdf"}

    def test_unknown_project(self, reports):
        with pytest.raises(NotFoundError):
            PdfReportService(reports).render_wrap_report("missing")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
