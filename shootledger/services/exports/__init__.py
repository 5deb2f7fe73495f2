"""
Export Services Package

CSV import/export and PDF rendering on top of the store and the
report engine.
"""

from shootledger.services.exports.csv_service import CsvService, ImportResult
from shootledger.services.exports.pdf_service import PdfReportService

__all__ = [
    "CsvService",
    "ImportResult",
    "PdfReportService",
]
