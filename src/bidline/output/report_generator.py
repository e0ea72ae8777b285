"""Text report output for schedule analysis.

This module creates plain-text reports showing:
- The dated calendar of a schedule, cycle by cycle
- Weekend, block, and weekday metrics with histograms
- Holidays worked
- An optional preference score breakdown
"""

from pathlib import Path
from typing import Optional, Union

from bidline.domain.models import (
    BLOCK_BUCKETS,
    OPEN_ENDED_BUCKET,
    WEEKDAY_NAMES,
    DatedShift,
    MetricsBundle,
    ScheduleInstance,
    ScoreResult,
)

OFF_LABEL = "----"
WIDTH = 80


class ReportGenerator:
    """Generates text reports for schedules.

    Creates human-readable text showing:
    - Calendar grid by cycle and week
    - Metric summaries and block-length histograms
    - Holiday detail and score breakdown
    """

    def generate(
        self,
        schedule: ScheduleInstance,
        shifts: list[DatedShift],
        metrics: MetricsBundle,
        output_path: Union[str, Path],
        score: Optional[ScoreResult] = None,
    ) -> str:
        """Generate a report and save it to a file.

        Args:
            schedule: The schedule being reported.
            shifts: The schedule's dated days.
            metrics: The schedule's metrics.
            output_path: Path to save the text file.
            score: Optional score to include.

        Returns:
            The generated text content.
        """
        content = self._generate_content(schedule, shifts, metrics, score)
        Path(output_path).write_text(content)
        return content

    def generate_to_string(
        self,
        schedule: ScheduleInstance,
        shifts: list[DatedShift],
        metrics: MetricsBundle,
        score: Optional[ScoreResult] = None,
    ) -> str:
        """Generate a report and return it as a string."""
        return self._generate_content(schedule, shifts, metrics, score)

    def generate_many(
        self,
        entries: list[tuple[ScheduleInstance, list[DatedShift], MetricsBundle]],
        output_path: Union[str, Path],
    ) -> str:
        """Generate one file holding the reports of several schedules."""
        content = "\n".join(
            self._generate_content(schedule, shifts, metrics, None)
            for schedule, shifts, metrics in entries
        )
        Path(output_path).write_text(content)
        return content

    def _generate_content(
        self,
        schedule: ScheduleInstance,
        shifts: list[DatedShift],
        metrics: MetricsBundle,
        score: Optional[ScoreResult],
    ) -> str:
        """Generate the full report content."""
        lines = []

        # Header
        lines.append("=" * WIDTH)
        title = f"SCHEDULE REPORT - Line {schedule.line_number or schedule.id}"
        if schedule.group:
            title += f" ({schedule.group})"
        lines.append(title)
        lines.append("=" * WIDTH)
        lines.append("")

        if shifts:
            lines.append(
                f"Period: {shifts[0].shift_date.isoformat()} to {shifts[-1].shift_date.isoformat()}"
            )
        lines.append(f"Cycle Length: {schedule.cycle_length} days x {schedule.cycle_count} cycles")
        lines.append(f"Shift Pattern: {metrics.shift_pattern}")
        lines.append("")

        lines.extend(self._calendar_section(shifts))
        lines.extend(self._metrics_section(metrics))
        lines.extend(self._holiday_section(metrics))
        if score is not None:
            lines.extend(self._score_section(score))

        return "\n".join(lines) + "\n"

    def _calendar_section(self, shifts: list[DatedShift]) -> list[str]:
        lines = ["-" * WIDTH, "CALENDAR BY CYCLE", "-" * WIDTH]
        current_cycle = None
        week: list[str] = []

        for shift in shifts:
            if shift.cycle != current_cycle:
                if week:
                    lines.append("  ".join(week))
                    week = []
                current_cycle = shift.cycle
                lines.append(f"Cycle {current_cycle + 1}:")
            label = shift.code or OFF_LABEL
            week.append(f"{WEEKDAY_NAMES[shift.day_of_week]} {shift.shift_date:%m-%d} {label:<5}")
            if len(week) == 7:
                lines.append("  ".join(week))
                week = []
        if week:
            lines.append("  ".join(week))

        lines.append("")
        return lines

    def _metrics_section(self, metrics: MetricsBundle) -> list[str]:
        lines = ["-" * WIDTH, "METRICS", "-" * WIDTH]
        pairs = metrics.weekend_pairs
        lines.append(f"Weekends Worked:     {metrics.weekends_on} of {pairs}")
        lines.append(f"Solitary Saturdays:  {metrics.saturdays_on} of {pairs}")
        lines.append(f"Solitary Sundays:    {metrics.sundays_on} of {pairs}")
        lines.append(f"Weekends Off:        {metrics.weekends_off} of {pairs}")
        lines.append(f"Days Worked:         {metrics.total_days_worked} of {metrics.total_days_in_period}")
        lines.append(f"Longest Stretch:     {metrics.longest_stretch} days")
        lines.append(
            f"Off Stretches:       {metrics.shortest_off_stretch}-{metrics.longest_off_stretch} days"
        )
        lines.append(f"Friday-Weekend Blocks (approx.): {metrics.friday_weekend_blocks}")
        lines.append(f"Weekday Blocks (approx.):        {metrics.weekday_blocks}")
        lines.append("")

        lines.append("Work Blocks by Length:")
        lines.extend(self._histogram(metrics.block_histogram))
        lines.append("")
        lines.append("Off Blocks by Length:")
        lines.extend(self._histogram(metrics.off_block_histogram))
        lines.append("")

        lines.append("Weekday Totals:")
        for day, total in sorted(metrics.weekday_totals.items()):
            lines.append(f"  {WEEKDAY_NAMES[day]}: {total}")
        lines.append("")

        if metrics.shift_counts:
            lines.append("Shift Codes:")
            for code, count in sorted(metrics.shift_counts.items()):
                lines.append(f"  {code:<8} {count}")
            lines.append("")
        return lines

    @staticmethod
    def _histogram(histogram: dict[int, int]) -> list[str]:
        lines = []
        for bucket in BLOCK_BUCKETS:
            count = histogram.get(bucket, 0)
            label = f"{bucket}+" if bucket == OPEN_ENDED_BUCKET else str(bucket)
            if count > 0:
                lines.append(f"  {label:>2}: {'#' * min(count, 60)} ({count})")
            else:
                lines.append(f"  {label:>2}: .")
        return lines

    def _holiday_section(self, metrics: MetricsBundle) -> list[str]:
        lines = ["-" * WIDTH, "HOLIDAYS", "-" * WIDTH]
        lines.append(f"Worked: {metrics.holidays_worked}   Off: {metrics.holidays_off}")
        for detail in metrics.holiday_details:
            lines.append(f"  {detail.holiday_date.isoformat()}  {detail.name:<28} {detail.code}")
        lines.append("")
        return lines

    def _score_section(self, score: ScoreResult) -> list[str]:
        lines = ["-" * WIDTH, f"SCORE: {score.score:.0f}", "-" * WIDTH]
        if score.breakdown:
            lines.append(f"{'Factor':<14} {'Score':>7} {'Weight':>7}")
            for factor in score.breakdown:
                lines.append(f"{factor.name:<14} {factor.score:>7.1f} {factor.weight:>7.2f}")
        if score.explanation:
            lines.append("")
            lines.append(score.explanation)
        for note in score.notes:
            lines.append(f"Note: {note}")
        lines.append("")
        return lines
