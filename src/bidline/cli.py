"""Command-line interface for the bidline schedule analysis tool."""

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

from bidline.analysis.analyzer import ScheduleAnalyzer
from bidline.analysis.holidays import HolidayCache, HolidayOverlay, StaticHolidayProvider
from bidline.batch.recompute import (
    BatchRecomputer,
    InMemoryMetricsStore,
    InMemoryScheduleRepository,
)
from bidline.config import EngineConfig, ScanMode, configure_logging
from bidline.domain.errors import BidlineError, ConfigurationError
from bidline.domain.models import (
    HOLIDAY_FILTER_PRESETS,
    Criteria,
    CriteriaWeights,
    CycleTemplate,
    HolidayFilter,
    ScheduleInstance,
    ShiftCode,
    ShiftCodeTable,
)
from bidline.output.pdf_generator import PDFGenerator
from bidline.output.report_generator import ReportGenerator
from bidline.scoring.mirror import MirrorLineFinder
from bidline.scoring.scorer import PreferenceScorer

logger = logging.getLogger(__name__)


def load_input(
    path: str, config: Optional[EngineConfig] = None
) -> tuple[ShiftCodeTable, list[ScheduleInstance]]:
    """Load shift codes and schedules from a JSON file.

    The file holds {"shift_codes": [...], "schedules": [...]}.

    Raises:
        ConfigurationError: If the file cannot be read or is malformed.
    """
    config = config or EngineConfig()
    try:
        data = json.loads(Path(path).read_text())
        table = ShiftCodeTable(ShiftCode.from_dict(c) for c in data.get("shift_codes", []))
        schedules = [
            ScheduleInstance.from_dict(s, config.off_markers) for s in data.get("schedules", [])
        ]
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
        raise ConfigurationError(f"Cannot load schedules from {path}: {e}") from e
    return table, schedules


def load_criteria(path: str) -> Criteria:
    """Load scoring criteria from a JSON file."""
    try:
        return Criteria.from_dict(json.loads(Path(path).read_text()))
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
        raise ConfigurationError(f"Cannot load criteria from {path}: {e}") from e


def create_sample_data() -> tuple[ShiftCodeTable, list[ScheduleInstance]]:
    """Create a small shift-code table and three 14-day lines for the demo."""
    table = ShiftCodeTable(
        [
            ShiftCode.from_dict({"code": "07D8", "category": "Days", "length": "8h",
                                 "begin_time": "07:00", "end_time": "15:00"}),
            ShiftCode.from_dict({"code": "15A8", "category": "Afternoons", "length": "8h",
                                 "begin_time": "15:00", "end_time": "23:00"}),
            ShiftCode.from_dict({"code": "23N8", "category": "Midnights", "length": "8h",
                                 "begin_time": "23:00", "end_time": "07:00"}),
            ShiftCode.from_dict({"code": "07D12", "category": "Days", "length": "12h",
                                 "begin_time": "07:00", "end_time": "19:00"}),
            ShiftCode.from_dict({"code": "19N12", "category": "Midnights", "length": "12h",
                                 "begin_time": "19:00", "end_time": "07:00"}),
        ]
    )

    off = None
    templates = {
        "1": ["07D8"] * 5 + [off, off] + ["07D8"] * 5 + [off, off],
        "2": ["15A8"] * 4 + [off, off, off] + ["15A8", "15A8", "23N8", "23N8", "23N8", off, off],
        "3": ["07D12", "07D12", off, off, "19N12", "19N12", "19N12",
              off, off, "07D12", "07D12", off, off, off],
    }
    schedules = [
        ScheduleInstance(
            id=f"demo-{line}",
            line_number=line,
            group="DEMO",
            template=CycleTemplate.from_codes(codes),
            start_date=date(2025, 12, 15),
            cycle_count=4,
        )
        for line, codes in templates.items()
    ]
    return table, schedules


def _build_analyzer(table: ShiftCodeTable, config: EngineConfig) -> ScheduleAnalyzer:
    holiday_filter = HolidayFilter.preset(config.holiday_filter) if config.holiday_filter else None
    overlay = HolidayOverlay(StaticHolidayProvider(), HolidayCache(), holiday_filter)
    return ScheduleAnalyzer(shift_codes=table, holiday_overlay=overlay, config=config)


def run_analyze(
    path: str,
    config: EngineConfig,
    jurisdiction: Optional[str] = None,
    pdf_path: Optional[str] = None,
    report_path: Optional[str] = None,
) -> int:
    """Analyze every schedule in a file and print a summary per line."""
    table, schedules = load_input(path, config)
    analyzer = _build_analyzer(table, config)
    print(f"Analyzing {len(schedules)} schedules ({config.scan_mode.value} scan)...")

    entries = []
    failures = 0
    for schedule in schedules:
        try:
            metrics = analyzer.analyze(schedule, jurisdiction)
            shifts = analyzer.expand(schedule)
        except ConfigurationError as e:
            failures += 1
            print(f"  Line {schedule.line_number or schedule.id}: ERROR {e}")
            continue
        entries.append((schedule, shifts, metrics))
        pairs = metrics.weekend_pairs
        print(
            f"  Line {schedule.line_number or schedule.id:<6} {metrics.shift_pattern:<16} "
            f"weekends {metrics.weekends_on}/{pairs}  "
            f"5-day {metrics.blocks_5day}  4-day {metrics.blocks_4day}  "
            f"longest {metrics.longest_stretch}  holidays {metrics.holidays_worked}"
        )

    if report_path:
        print(f"\nGenerating report: {report_path}")
        ReportGenerator().generate_many(entries, report_path)
    if pdf_path:
        print(f"\nGenerating PDF: {pdf_path}")
        PDFGenerator().generate(entries, pdf_path)
        print("  PDF created successfully!")

    return 1 if failures else 0


def run_score(path: str, criteria_path: str, config: EngineConfig, top: Optional[int] = None) -> int:
    """Rank every schedule in a file against a criteria file."""
    table, schedules = load_input(path, config)
    criteria = load_criteria(criteria_path)
    scorer = PreferenceScorer(analyzer=_build_analyzer(table, config))

    ranked = scorer.rank(schedules, criteria, table, top=top)
    print(f"Ranking {len(schedules)} schedules:")
    for position, (schedule, result) in enumerate(ranked, 1):
        print(f"{position:>3}. Line {schedule.line_number or schedule.id:<6} score {result.score:>5.0f}"
              f"  weekends {result.weekends_on}")
        if result.explanation:
            print(f"       {result.explanation}")
        for note in result.notes:
            print(f"       note: {note}")
    return 0


def run_recompute(
    path: str,
    config: EngineConfig,
    jurisdiction: Optional[str] = None,
    workers: Optional[int] = None,
    output_path: Optional[str] = None,
) -> int:
    """Recompute metrics for every schedule and optionally write them out."""
    table, schedules = load_input(path, config)
    store = InMemoryMetricsStore()
    recomputer = BatchRecomputer(
        repository=InMemoryScheduleRepository(schedules),
        analyzer=_build_analyzer(table, config),
        store=store,
        max_workers=workers or config.max_workers,
    )
    summary = recomputer.recompute_all(jurisdiction)

    print(f"Processed: {summary.processed}  Succeeded: {summary.succeeded}  Failed: {summary.failed}")
    for failure in summary.failures:
        print(f"  - {failure.schedule_id}: {failure.reason}")

    if output_path:
        payload = {
            "summary": summary.to_dict(),
            "metrics": {sid: m.to_dict() for sid, m in sorted(store.all().items())},
        }
        Path(output_path).write_text(json.dumps(payload, indent=2))
        print(f"Metrics written to {output_path}")

    return 1 if summary.failed else 0


def run_mirror(path: str, line: str, config: EngineConfig, groups: Optional[list[str]] = None) -> int:
    """List the lines that mirror one line, best trade partners first."""
    table, schedules = load_input(path, config)
    own = next((s for s in schedules if line in (s.id, s.line_number)), None)
    if own is None:
        raise ConfigurationError(f"No schedule with id or line number {line!r} in {path}")

    finder = MirrorLineFinder(_build_analyzer(table, config))
    mirrors = finder.find(own, schedules, table, groups=groups)

    print(f"Mirrored lines for Line {own.line_number or own.id}:")
    if not mirrors:
        print("  No mirrored lines found")
    for position, mirror in enumerate(mirrors, 1):
        other = mirror.schedule
        print(f"{position:>3}. Line {other.line_number or other.id:<6} trade {mirror.trade_score:>5.1f}"
              f"  pattern {mirror.pattern_score:>5.1f}%"
              f"  significant {mirror.significant_difference_count}"
              f"  mismatched days {mirror.work_day_mismatch_count}")
    return 0


def run_demo(config: EngineConfig) -> int:
    """Analyze and score the built-in sample lines."""
    table, schedules = create_sample_data()
    analyzer = _build_analyzer(table, config)
    scorer = PreferenceScorer(analyzer=analyzer)
    report = ReportGenerator()

    criteria = Criteria(
        shift_categories=["Days"],
        day_off_dates=[date(2025, 12, 25), date(2026, 1, 1)],
        weights=CriteriaWeights(weekend=3.0, days_off=2.0),
    )

    print(f"Analyzing {len(schedules)} demo lines from {schedules[0].start_date}...")
    for schedule in schedules:
        analyzer.attach(schedule)
        result = scorer.score(schedule, criteria, table)
        print(report.generate_to_string(schedule, analyzer.expand(schedule), schedule.metrics, result))
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="bidline - Schedule Pattern Analysis and Preference Scoring",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s demo                                  Analyze and score sample lines
  %(prog)s analyze lines.json                    Print metrics for each line
  %(prog)s analyze lines.json --pdf lines.pdf    Also write a PDF report
  %(prog)s analyze lines.json --full-span        Scan every cycle exactly
  %(prog)s score lines.json --criteria me.json --top 10
  %(prog)s recompute lines.json --workers 8 --output metrics.json
  %(prog)s mirror lines.json --line 12 --group OPS
  %(prog)s --holiday-filter workplace_standard analyze lines.json
        """,
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level (default: from config, INFO)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="JSON file with engine configuration overrides",
    )
    parser.add_argument(
        "--holiday-filter",
        type=str,
        default=None,
        choices=sorted(HOLIDAY_FILTER_PRESETS),
        help="Count only holidays passing a preset filter (default: from config, all)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Analyze command
    analyze_parser = subparsers.add_parser("analyze", help="Compute metrics for each schedule")
    analyze_parser.add_argument("file", help="JSON file with shift_codes and schedules")
    analyze_parser.add_argument(
        "--jurisdiction", "-j",
        type=str,
        default=None,
        help="Holiday jurisdiction (default: per schedule, then config)",
    )
    analyze_parser.add_argument(
        "--full-span",
        action="store_true",
        help="Scan every day of every cycle instead of scaling one cycle",
    )
    analyze_parser.add_argument("--pdf", type=str, default=None, help="Write a PDF report")
    analyze_parser.add_argument("--report", type=str, default=None, help="Write a text report")

    # Score command
    score_parser = subparsers.add_parser("score", help="Rank schedules against criteria")
    score_parser.add_argument("file", help="JSON file with shift_codes and schedules")
    score_parser.add_argument("--criteria", "-c", type=str, required=True, help="Criteria JSON file")
    score_parser.add_argument("--top", "-n", type=int, default=None, help="Show only the top N")

    # Recompute command
    recompute_parser = subparsers.add_parser("recompute", help="Batch recompute all metrics")
    recompute_parser.add_argument("file", help="JSON file with shift_codes and schedules")
    recompute_parser.add_argument("--jurisdiction", "-j", type=str, default=None)
    recompute_parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Worker threads (default: from config, 4)",
    )
    recompute_parser.add_argument("--output", "-o", type=str, default=None, help="Write metrics JSON")

    # Mirror command
    mirror_parser = subparsers.add_parser("mirror", help="Find lines that mirror one line")
    mirror_parser.add_argument("file", help="JSON file with shift_codes and schedules")
    mirror_parser.add_argument("--line", "-l", type=str, required=True, help="Line number or id")
    mirror_parser.add_argument(
        "--group", "-g",
        action="append",
        default=None,
        help="Only compare lines in this group (repeatable)",
    )

    # Demo command
    subparsers.add_parser("demo", help="Analyze and score built-in sample lines")

    args = parser.parse_args(argv)

    try:
        config = EngineConfig.from_json_file(args.config) if args.config else EngineConfig()
        configure_logging(args.log_level or config.log_level)
        if args.holiday_filter:
            config.holiday_filter = args.holiday_filter

        if args.command == "analyze":
            if args.full_span:
                config.scan_mode = ScanMode.FULL_SPAN
            return run_analyze(args.file, config, args.jurisdiction, args.pdf, args.report)
        elif args.command == "score":
            return run_score(args.file, args.criteria, config, args.top)
        elif args.command == "recompute":
            return run_recompute(args.file, config, args.jurisdiction, args.workers, args.output)
        elif args.command == "mirror":
            return run_mirror(args.file, args.line, config, args.group)
        elif args.command == "demo":
            return run_demo(config)
        else:
            parser.print_help()
            return 1
    except BidlineError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
