"""Output generation for schedule metrics (text reports, PDF)."""

from bidline.output.pdf_generator import PDFGenerator
from bidline.output.report_generator import ReportGenerator

__all__ = [
    "PDFGenerator",
    "ReportGenerator",
]
