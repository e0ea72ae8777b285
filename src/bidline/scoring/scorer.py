"""Preference scoring.

Scores a schedule against a user's weighted criteria. Each active factor
produces a 0-100 sub-score; the result is their weighted average, rounded
and clamped to [0, 100].

Factors, in explanation order:
- group: schedule group is one of the selected groups
- days_off: requested dates fall on days off
- shift: worked days use one of the selected codes
- blocks_5day / blocks_4day: block count close to the desired count
- weekend / saturday / sunday: fewer worked weekend days score higher
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterable, Optional, Union

from bidline.analysis.analyzer import ScheduleAnalyzer
from bidline.analysis.expander import parse_start_date
from bidline.domain.models import (
    CategoryIntent,
    Criteria,
    FactorScore,
    MetricsBundle,
    ScheduleInstance,
    ScoreResult,
    ShiftCode,
    ShiftCodeTable,
)
from bidline.domain.policies import DefaultScoringPolicy, ScoringPolicy
from bidline.validation.validator import MetricsValidator

logger = logging.getLogger(__name__)

FACTOR_ORDER = (
    "group",
    "days_off",
    "shift",
    "blocks_5day",
    "blocks_4day",
    "weekend",
    "saturday",
    "sunday",
)

MAX_LISTED_DAYS = 8
MAX_DOMINANT_FACTORS = 3
DAYS_OFF_NOTE_RATIO = 0.4


def expand_selected_codes(
    criteria: Criteria,
    shift_codes: Union[ShiftCodeTable, Iterable[ShiftCode], None],
) -> frozenset[str]:
    """Expand selected categories and length labels into concrete codes.

    The result is the union of the explicit codes, every code in a selected
    category, and every code with a selected length label. Expanding twice,
    or in any order, gives the same set.
    """
    table = ShiftCodeTable.coerce(shift_codes)
    codes = {c.strip() for c in criteria.shift_codes if c and c.strip()}
    for category in criteria.shift_categories:
        codes |= table.codes_in_category(category)
    for length in criteria.shift_lengths:
        codes |= table.codes_with_length(length)
    return frozenset(codes)


def _round_half_up(value: float) -> float:
    return float(math.floor(value + 0.5))


def _short_date(value: date) -> str:
    return f"{value:%b} {value.day}"


def _listing(label: str, items: list[str]) -> str:
    if len(items) <= MAX_LISTED_DAYS:
        return f"{label}: {', '.join(items)}"
    return f"{label}: {', '.join(items[:MAX_LISTED_DAYS])} + {len(items) - MAX_LISTED_DAYS} more"


@dataclass
class _Context:
    """Everything a factor may read while scoring one schedule."""

    schedule: ScheduleInstance
    criteria: Criteria
    table: ShiftCodeTable
    metrics: MetricsBundle
    selected_codes: frozenset[str]
    shift_counts: Counter


class PreferenceScorer:
    """Scores schedules against weighted criteria.

    score() is the single entry point: it expands categories, sanitizes
    stored metrics, computes every active factor, and never raises. Criteria
    expressing no preference at all get the policy's neutral score.

    Usage:
        scorer = PreferenceScorer()
        result = scorer.score(schedule, criteria, shift_codes)
        print(result.score, result.explanation)
    """

    def __init__(
        self,
        policy: Optional[ScoringPolicy] = None,
        validator: Optional[MetricsValidator] = None,
        analyzer: Optional[ScheduleAnalyzer] = None,
    ):
        """Initialize the scorer.

        Args:
            policy: Scoring constants. Uses DefaultScoringPolicy if None.
            validator: Metrics validator for stored bundles. Uses one with
                the analyzer's configuration if None.
            analyzer: Used to compute metrics for schedules that carry
                none. A default analyzer over the given shift codes is used
                if None.
        """
        self.policy = policy or DefaultScoringPolicy()
        self.validator = validator or MetricsValidator(analyzer.config if analyzer else None)
        self.analyzer = analyzer

        self._factors: dict[str, Callable[[_Context], tuple[float, str]]] = {
            "group": self._group_factor,
            "days_off": self._days_off_factor,
            "shift": self._shift_factor,
            "blocks_5day": lambda ctx: self._block_factor(ctx, 5),
            "blocks_4day": lambda ctx: self._block_factor(ctx, 4),
            "weekend": self._weekend_factor,
            "saturday": self._saturday_factor,
            "sunday": self._sunday_factor,
        }

    def score(
        self,
        schedule: ScheduleInstance,
        criteria: Criteria,
        shift_codes: Union[ShiftCodeTable, Iterable[ShiftCode], None] = None,
    ) -> ScoreResult:
        """Score one schedule.

        Args:
            schedule: Schedule to score; its attached metrics are used when
                present, otherwise metrics are computed.
            criteria: User preferences.
            shift_codes: Reference table for category and length expansion.

        Returns:
            ScoreResult with score in [0, 100]. Failures are reported as a
            0 score with a note, never raised.
        """
        try:
            return self._score(schedule, criteria, ShiftCodeTable.coerce(shift_codes))
        except Exception as e:
            schedule_id = getattr(schedule, "id", None)
            logger.exception("Scoring failed for schedule %s", schedule_id)
            return ScoreResult(
                score=0.0,
                explanation="Schedule could not be scored",
                notes=[f"Scoring failed: {e}"],
            )

    def rank(
        self,
        schedules: Iterable[ScheduleInstance],
        criteria: Criteria,
        shift_codes: Union[ShiftCodeTable, Iterable[ShiftCode], None] = None,
        top: Optional[int] = None,
    ) -> list[tuple[ScheduleInstance, ScoreResult]]:
        """Score many schedules and sort them best first.

        Ties keep the input order.
        """
        table = ShiftCodeTable.coerce(shift_codes)
        scored = [(s, self.score(s, criteria, table)) for s in schedules]
        scored.sort(key=lambda pair: -pair[1].score)
        return scored[:top] if top is not None else scored

    def _score(
        self, schedule: ScheduleInstance, criteria: Criteria, table: ShiftCodeTable
    ) -> ScoreResult:
        notes: list[str] = []
        metrics = self._metrics_for(schedule, table, notes)

        result = ScoreResult(
            score=0.0,
            notes=notes,
            weekends_on=f"{metrics.weekends_on} of {metrics.weekend_pairs}",
            saturdays_on=f"{metrics.saturdays_on} of {metrics.weekend_pairs}",
            sundays_on=f"{metrics.sundays_on} of {metrics.weekend_pairs}",
        )

        shift_counts = self._worked_code_counts(schedule, table)
        if sum(shift_counts.values()) == 0:
            result.score = self.policy.empty_schedule_score()
            result.explanation = "No worked shifts"
            return result

        if criteria.is_empty:
            result.score = self.policy.neutral_score()
            result.explanation = "No criteria selected"
            return result

        ctx = _Context(
            schedule=schedule,
            criteria=criteria,
            table=table,
            metrics=metrics,
            selected_codes=expand_selected_codes(criteria, table),
            shift_counts=shift_counts,
        )

        weights = {
            name: self.policy.clamp_weight(getattr(criteria.weights, name))
            for name in FACTOR_ORDER
        }

        for name in FACTOR_ORDER:
            weight = weights[name]
            if weight <= 0 or not self._is_active(name, ctx):
                continue
            try:
                sub_score, detail = self._factors[name](ctx)
                if not math.isfinite(sub_score):
                    raise ValueError(f"non-finite sub-score {sub_score!r}")
                sub_score = max(0.0, min(100.0, sub_score))
            except Exception as e:
                logger.warning("Factor %s failed for schedule %s: %s", name, schedule.id, e)
                notes.append(f"{name} factor could not be computed: {e}")
                sub_score, detail = 0.0, ""
            result.breakdown.append(FactorScore(name=name, score=sub_score, weight=weight, detail=detail))

        total_weight = sum(f.weight for f in result.breakdown)
        if total_weight <= 0:
            result.score = self.policy.neutral_score()
            result.explanation = "No active criteria"
            return result

        raw = sum(f.contribution for f in result.breakdown) / total_weight
        if not math.isfinite(raw):
            notes.append("Weighted score was not a finite number")
            raw = 0.0
        result.score = max(0.0, min(100.0, _round_half_up(raw)))
        result.explanation = self._explain(result.breakdown, metrics)
        return result

    def _metrics_for(
        self, schedule: ScheduleInstance, table: ShiftCodeTable, notes: list[str]
    ) -> MetricsBundle:
        if schedule.metrics is None:
            analyzer = self.analyzer or ScheduleAnalyzer(shift_codes=table)
            return analyzer.analyze(schedule)
        if not schedule.metrics.validated:
            validation = self.validator.sanitize(schedule)
            notes.extend(str(error) for error in validation.errors)
        return schedule.metrics

    @staticmethod
    def _worked_code_counts(schedule: ScheduleInstance, table: ShiftCodeTable) -> Counter:
        """Worked days per code over the whole period.

        Codes missing from a non-empty reference table count as days off.
        """
        counts: Counter = Counter()
        for code in schedule.template.codes:
            if code is None:
                continue
            if len(table) and code not in table:
                continue
            counts[code] += 1
        cycles = schedule.cycle_count if isinstance(schedule.cycle_count, int) else 1
        return Counter({code: n * max(cycles, 1) for code, n in counts.items()})

    @staticmethod
    def _is_active(name: str, ctx: _Context) -> bool:
        if name == "group":
            return bool(ctx.criteria.selected_groups)
        if name == "days_off":
            return bool(ctx.criteria.day_off_dates)
        if name == "shift":
            return bool(ctx.selected_codes)
        if name in ("weekend", "saturday", "sunday"):
            return ctx.metrics.weekend_pairs > 0
        return True

    def _group_factor(self, ctx: _Context) -> tuple[float, str]:
        group = ctx.schedule.group.strip()
        selected = {g.strip() for g in ctx.criteria.selected_groups}
        if group in selected:
            return 100.0, "Group matches"
        return 0.0, f"Group mismatch ({group or 'none'})"

    def _days_off_factor(self, ctx: _Context) -> tuple[float, str]:
        template = ctx.schedule.template
        start = parse_start_date(ctx.schedule.start_date)
        matched: list[str] = []
        missing: list[str] = []

        for requested in ctx.criteria.day_off_dates:
            # Python's modulo maps dates before the start onto the cycle too
            index = (requested - start).days % template.length
            code = template.codes[index]
            is_off = code is None or (len(ctx.table) > 0 and code not in ctx.table)
            (matched if is_off else missing).append(_short_date(requested))

        requested_count = len(ctx.criteria.day_off_dates)
        rate = len(matched) / requested_count
        parts = [
            f"{_round_half_up(rate * 100):.0f}% of requested days off match "
            f"({len(matched)}/{requested_count})"
        ]
        if matched:
            parts.append(_listing("Days off", matched))
        if missing:
            parts.append(_listing("Missing", missing))
        return 100.0 * rate, "; ".join(parts)

    def _shift_factor(self, ctx: _Context) -> tuple[float, str]:
        counts = ctx.shift_counts
        total = sum(counts.values())
        selected = ctx.selected_codes
        criteria = ctx.criteria

        if criteria.category_intent == CategoryIntent.MIX and len(criteria.shift_categories) >= 2:
            wanted = {c.strip().lower() for c in criteria.shift_categories}
            found: list[str] = []
            for code in counts:
                shift_code = ctx.table.get(code)
                if shift_code and shift_code.category.lower() in wanted and shift_code.category not in found:
                    found.append(shift_code.category)
            if len(found) < 2:
                return 0.0, "Single shift type (looking for variety)"
            mix_detail = f"{len(found)} different shift types ({', '.join(found)})"
        else:
            mix_detail = ""

        matching = {code: n for code, n in counts.items() if code in selected}
        matched_total = sum(matching.values())
        rate = matched_total / total
        percent = f"{_round_half_up(rate * 100):.0f}%"

        if len(matching) == 1:
            (only,) = matching
            detail = f"{matched_total} of {total} total shifts are {only} ({percent})"
        elif matching:
            listed = ", ".join(f"{code}: {n}" for code, n in sorted(matching.items()))
            detail = f"{matched_total} of {total} total shifts are {listed} ({percent})"
        else:
            detail = f"{percent} of shifts match selected codes"

        others = {code: n for code, n in counts.items() if code not in selected}
        if others:
            if len(others) == 1:
                (other,) = others
                detail += f"; The other {total - matched_total} shifts are: {other}"
            else:
                listed = ", ".join(f"{code}: {n}" for code, n in sorted(others.items()))
                detail += f"; The other {total - matched_total} shifts are: {listed}"
        if mix_detail:
            detail += f"; {mix_detail}"
        return 100.0 * rate, detail

    def _block_factor(self, ctx: _Context, length: int) -> tuple[float, str]:
        count = ctx.metrics.block_count(length)
        desired = (
            ctx.criteria.desired_blocks_5day if length == 5 else ctx.criteria.desired_blocks_4day
        )
        word = "five" if length == 5 else "four"
        detail = f"{count} {word}-day work blocks"
        if desired:
            detail += f" (wanted {desired})"
        return self.policy.block_preference_score(count, desired, length), detail

    def _weekend_factor(self, ctx: _Context) -> tuple[float, str]:
        metrics = ctx.metrics
        pairs = metrics.weekend_pairs
        return (
            self.policy.exposure_score(metrics.weekends_on, pairs),
            f"{metrics.weekends_on} of {pairs} full weekends working",
        )

    def _saturday_factor(self, ctx: _Context) -> tuple[float, str]:
        metrics = ctx.metrics
        return (
            self.policy.exposure_score(metrics.weekends_on + metrics.saturdays_on, metrics.weekend_pairs),
            f"{metrics.saturdays_on} solitary Saturdays working",
        )

    def _sunday_factor(self, ctx: _Context) -> tuple[float, str]:
        metrics = ctx.metrics
        return (
            self.policy.exposure_score(metrics.weekends_on + metrics.sundays_on, metrics.weekend_pairs),
            f"{metrics.sundays_on} solitary Sundays working",
        )

    def _explain(self, breakdown: list[FactorScore], metrics: MetricsBundle) -> str:
        parts = [f.detail for f in breakdown if f.detail]

        dominant = sorted(
            (f for f in breakdown if f.contribution > 0),
            key=lambda f: (-f.contribution, f.name),
        )[:MAX_DOMINANT_FACTORS]
        if dominant:
            parts.append("Strongest factors: " + ", ".join(f.name for f in dominant))

        if metrics.total_days_in_period > 0:
            days_off = metrics.total_days_off
            if days_off / metrics.total_days_in_period > DAYS_OFF_NOTE_RATIO:
                parts.append(f"{days_off} total days off")

        return "; ".join(parts)
