"""PDF generation for schedule metrics.

This module creates printable PDF reports showing:
- A weekly calendar grid of each schedule's period
- The schedule's weekend, block, and weekday metrics
- Holidays that fall on worked days
"""

from datetime import timedelta
from io import BytesIO
from pathlib import Path
from typing import Union

from bidline.domain.models import (
    WEEKDAY_NAMES,
    DatedShift,
    MetricsBundle,
    ScheduleInstance,
)

# Color definitions (RGB tuples, 0-1 scale)
COLORS = {
    "worked": (0.55, 0.75, 0.95),  # Blue
    "off": (0.95, 0.95, 0.95),  # Light gray
    "holiday_worked": (0.95, 0.55, 0.45),  # Red
    "outside": (1.0, 1.0, 1.0),  # White
}

ReportEntry = tuple[ScheduleInstance, list[DatedShift], MetricsBundle]


class PDFGenerator:
    """Generates printable PDF metrics reports.

    Each schedule gets one page with:
    - A calendar grid, one row per week (Monday first)
    - A metrics table
    - The list of holidays worked

    Example:
        >>> generator = PDFGenerator()
        >>> generator.generate([(schedule, shifts, metrics)], "lines.pdf")
    """

    def __init__(
        self,
        page_width: float = 792,  # Letter landscape width (11")
        page_height: float = 612,  # Letter landscape height (8.5")
        margin: float = 36,  # 0.5 inch margins
    ):
        self.page_width = page_width
        self.page_height = page_height
        self.margin = margin

    def generate(
        self,
        entries: list[ReportEntry],
        output_path: Union[str, Path],
    ) -> None:
        """Generate a PDF report and save to file.

        Args:
            entries: (schedule, dated shifts, metrics) per schedule.
            output_path: Path to save the PDF.
        """
        try:
            from reportlab.lib.pagesizes import letter, landscape
            from reportlab.pdfgen import canvas
        except ImportError:
            raise ImportError(
                "reportlab is required for PDF generation. "
                "Install with: pip install reportlab"
            )

        c = canvas.Canvas(str(output_path), pagesize=landscape(letter))
        self._draw_pages(c, entries)
        c.save()

    def generate_to_buffer(self, entries: list[ReportEntry]) -> BytesIO:
        """Generate a PDF report and return it as a bytes buffer.

        Args:
            entries: (schedule, dated shifts, metrics) per schedule.

        Returns:
            BytesIO buffer containing PDF data.
        """
        try:
            from reportlab.lib.pagesizes import letter, landscape
            from reportlab.pdfgen import canvas
        except ImportError:
            raise ImportError(
                "reportlab is required for PDF generation. "
                "Install with: pip install reportlab"
            )

        buffer = BytesIO()
        c = canvas.Canvas(buffer, pagesize=landscape(letter))
        self._draw_pages(c, entries)
        c.save()
        buffer.seek(0)
        return buffer

    def _draw_pages(self, c, entries: list[ReportEntry]) -> None:
        total_pages = len(entries)
        for page_num, (schedule, shifts, metrics) in enumerate(entries, 1):
            self._draw_header(c, schedule, shifts, metrics)
            self._draw_calendar(c, shifts, metrics)
            self._draw_metrics(c, metrics)

            c.setFont("Helvetica", 9)
            c.drawCentredString(
                self.page_width / 2,
                self.margin - 10,
                f"Page {page_num} of {total_pages}",
            )
            c.showPage()

    def _draw_header(
        self,
        c,
        schedule: ScheduleInstance,
        shifts: list[DatedShift],
        metrics: MetricsBundle,
    ) -> None:
        """Draw page header with line number and period."""
        title = f"Line {schedule.line_number or schedule.id}"
        if schedule.group:
            title += f" - {schedule.group}"
        c.setFont("Helvetica-Bold", 16)
        c.drawString(self.margin, self.page_height - self.margin - 20, title)

        c.setFont("Helvetica", 10)
        if shifts:
            period = (
                f"{shifts[0].shift_date.strftime('%B %d, %Y')} - "
                f"{shifts[-1].shift_date.strftime('%B %d, %Y')}"
            )
        else:
            period = "No dates"
        c.drawString(
            self.margin,
            self.page_height - self.margin - 35,
            f"{period}   |   {schedule.cycle_length}-day cycle x {schedule.cycle_count}"
            f"   |   Pattern: {metrics.shift_pattern}",
        )

    def _draw_calendar(self, c, shifts: list[DatedShift], metrics: MetricsBundle) -> None:
        """Draw the weekly calendar grid, Monday first."""
        if not shifts:
            return

        by_date = {s.shift_date: s for s in shifts}
        holiday_dates = {h.holiday_date for h in metrics.holiday_details}
        first_monday = shifts[0].shift_date - timedelta(days=shifts[0].day_of_week)
        last_date = shifts[-1].shift_date
        weeks = (last_date - first_monday).days // 7 + 1

        cell_width = 60
        top = self.page_height - self.margin - 60
        usable_height = top - self.margin - 20
        cell_height = min(18.0, usable_height / (weeks + 1))
        font_size = max(4.0, min(7.0, cell_height - 3))
        left = self.margin

        # Day-of-week header
        c.setFont("Helvetica-Bold", 8)
        c.setFillColorRGB(0, 0, 0)
        for day, name in enumerate(WEEKDAY_NAMES):
            c.drawCentredString(left + day * cell_width + cell_width / 2, top + 4, name)

        c.setStrokeColorRGB(0.7, 0.7, 0.7)
        c.setLineWidth(0.3)
        for week in range(weeks):
            y = top - (week + 1) * cell_height
            for day in range(7):
                current = first_monday + timedelta(days=week * 7 + day)
                shift = by_date.get(current)
                x = left + day * cell_width

                if shift is None:
                    color = COLORS["outside"]
                elif current in holiday_dates:
                    color = COLORS["holiday_worked"]
                elif shift.is_worked:
                    color = COLORS["worked"]
                else:
                    color = COLORS["off"]
                c.setFillColorRGB(*color)
                c.rect(x, y, cell_width, cell_height, fill=1, stroke=1)

                if shift is not None:
                    c.setFillColorRGB(0, 0, 0)
                    c.setFont("Helvetica", font_size)
                    label = f"{current:%m/%d} {shift.code or ''}"
                    c.drawString(x + 2, y + (cell_height - font_size) / 2 + 1, label)

    def _draw_metrics(self, c, metrics: MetricsBundle) -> None:
        """Draw the metrics table and holiday list to the right of the grid."""
        x = self.margin + 7 * 60 + 30
        y = self.page_height - self.margin - 60
        pairs = metrics.weekend_pairs

        c.setFillColorRGB(0, 0, 0)
        c.setFont("Helvetica-Bold", 12)
        c.drawString(x, y, "Metrics")
        y -= 18

        rows = [
            ("Weekends worked", f"{metrics.weekends_on} of {pairs}"),
            ("Solitary Saturdays", f"{metrics.saturdays_on} of {pairs}"),
            ("Solitary Sundays", f"{metrics.sundays_on} of {pairs}"),
            ("Weekends off", f"{metrics.weekends_off} of {pairs}"),
            ("Days worked", f"{metrics.total_days_worked} of {metrics.total_days_in_period}"),
            ("Longest stretch", f"{metrics.longest_stretch} days"),
            ("5-day blocks", str(metrics.blocks_5day)),
            ("4-day blocks", str(metrics.blocks_4day)),
            ("Single days", str(metrics.single_days)),
            ("Longest off stretch", f"{metrics.longest_off_stretch} days"),
            ("Holidays worked", str(metrics.holidays_worked)),
            ("Holidays off", str(metrics.holidays_off)),
        ]
        c.setFont("Helvetica", 9)
        for label, value in rows:
            c.drawString(x, y, label)
            c.drawRightString(x + 220, y, value)
            y -= 13

        y -= 8
        c.setFont("Helvetica-Bold", 10)
        c.drawString(x, y, "Weekdays Worked")
        y -= 14
        c.setFont("Helvetica", 9)
        for day, total in sorted(metrics.weekday_totals.items()):
            c.drawString(x, y, WEEKDAY_NAMES[day])
            c.drawRightString(x + 220, y, str(total))
            y -= 12

        if metrics.holiday_details:
            y -= 8
            c.setFont("Helvetica-Bold", 10)
            c.drawString(x, y, "Holidays Worked")
            y -= 14
            c.setFont("Helvetica", 8)
            for detail in metrics.holiday_details:
                if y < self.margin + 10:
                    c.drawString(x, y, "...")
                    break
                c.drawString(x, y, f"{detail.holiday_date:%Y-%m-%d}  {detail.name[:24]}")
                c.drawRightString(x + 220, y, detail.code)
                y -= 11
