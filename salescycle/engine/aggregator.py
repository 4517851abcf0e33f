"""
Funnel aggregation over a (possibly partially enriched) job set.

Every function here is pure: same jobs and context in, same output out.
The engine calls build_state() after every batch, so nothing is patched
incrementally.

Conversion rates use "at or past" reach: a job sitting at stage N counts as
having passed stages 1..N, even if the CRM never recorded the earlier ones.
"""
from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, tzinfo
from typing import Iterable, Optional, Sequence

from salescycle.config import Settings
from salescycle.engine.dates import is_current_month, is_current_year, parse_date, report_tz, today_in
from salescycle.engine.models import (
    ConversionRate,
    EngineState,
    EnrichedJob,
    FunnelRow,
    RepConversions,
    RepFunnel,
    RepPerformance,
)
from salescycle.engine.stages import (
    APPROVED,
    APPROVED_STAGE,
    FINAL_STAGE_ORDER,
    STAGES,
    UNCLASSIFIED,
    stage_order,
)

# (from label, to label, from order, to order)
ADJACENT_PAIRS: tuple[tuple[str, str, int, int], ...] = (
    ("IVS", "Adjuster", 1, 2),
    ("Adjuster", "Bought", 2, 3),
    ("Bought", "Design Completed", 3, 5),
    ("Design Completed", "Approved", 5, 6),
)
FULL_CYCLE_PAIR: tuple[str, str, int, int] = ("Lead", "Approved", 1, FINAL_STAGE_ORDER)
CONVERSION_PAIRS = ADJACENT_PAIRS + (FULL_CYCLE_PAIR,)


@dataclass(frozen=True)
class AggregationContext:
    today: date
    tz: tzinfo
    inactive_reps: frozenset[str] = frozenset()

    @classmethod
    def from_settings(cls, settings: Settings, today: Optional[date] = None) -> "AggregationContext":
        tz = report_tz(settings.report_timezone)
        return cls(
            today=today or today_in(tz),
            tz=tz,
            inactive_reps=settings.inactive_reps,
        )


def _pct(numerator: int, denominator: int) -> int:
    """Rounded percentage, half-up; 0 when the denominator is 0."""
    if denominator <= 0:
        return 0
    return int(math.floor(numerator * 100 / denominator + 0.5))


def is_active_rep(name: str, inactive_reps: frozenset[str]) -> bool:
    if not name:
        return False
    return name.strip().lower() not in inactive_reps


def primary_view(jobs: Iterable[EnrichedJob], inactive_reps: frozenset[str]) -> list[EnrichedJob]:
    """Jobs with no owner yet, or owned by an active rep."""
    return [j for j in jobs if not j.sales_owner or is_active_rep(j.sales_owner, inactive_reps)]


def count_at_or_past(jobs: Iterable[EnrichedJob], order: int) -> int:
    count = 0
    for job in jobs:
        o = stage_order(job.stage)
        if o is not None and o >= order:
            count += 1
    return count


def _group_by_owner(jobs: Iterable[EnrichedJob]) -> dict[str, list[EnrichedJob]]:
    by_rep: dict[str, list[EnrichedJob]] = defaultdict(list)
    for job in jobs:
        if job.sales_owner:
            by_rep[job.sales_owner].append(job)
    return by_rep


# ---------------------------------------------------------------------------
# Funnel + conversions
# ---------------------------------------------------------------------------


def build_funnel(jobs: Sequence[EnrichedJob]) -> tuple[FunnelRow, ...]:
    rows = []
    for stage in STAGES:
        matching = [j for j in jobs if j.stage == stage.name]
        rows.append(FunnelRow(
            stage=stage.name,
            milestone=stage.milestone,
            count=len(matching),
            value=sum(j.contract_amount for j in matching),
            order=stage.order,
        ))
    return tuple(rows)


def conversion_rates(classified: Sequence[EnrichedJob]) -> tuple[ConversionRate, ...]:
    """Rates for every CONVERSION_PAIRS entry; empty when there are no jobs."""
    if not classified:
        return ()
    return tuple(
        ConversionRate(
            from_stage=from_label,
            to_stage=to_label,
            rate=_pct(count_at_or_past(classified, to_order), count_at_or_past(classified, from_order)),
        )
        for from_label, to_label, from_order, to_order in CONVERSION_PAIRS
    )


def build_conversions(jobs: Sequence[EnrichedJob], ctx: AggregationContext) -> tuple[ConversionRate, ...]:
    mtd = [
        j for j in jobs
        if j.stage != UNCLASSIFIED and is_current_month(j.created_date, ctx.today, ctx.tz)
    ]
    return conversion_rates(mtd)


# ---------------------------------------------------------------------------
# Per-rep breakdowns
# ---------------------------------------------------------------------------


def build_rep_funnel(jobs: Sequence[EnrichedJob], ctx: AggregationContext) -> tuple[RepFunnel, ...]:
    active = [j for j in jobs if is_active_rep(j.sales_owner, ctx.inactive_reps)]
    by_rep = _group_by_owner(active)
    return tuple(
        RepFunnel(rep=rep, funnel=build_funnel(by_rep[rep]))
        for rep in sorted(by_rep)
    )


def build_rep_conversions(jobs: Sequence[EnrichedJob], ctx: AggregationContext) -> tuple[RepConversions, ...]:
    # All classified jobs, not just this month's
    active = [j for j in jobs if is_active_rep(j.sales_owner, ctx.inactive_reps)]
    by_rep = _group_by_owner(active)
    out = []
    for rep in sorted(by_rep):
        classified = [j for j in by_rep[rep] if j.stage != UNCLASSIFIED]
        conversions = conversion_rates(classified)
        if conversions:
            out.append(RepConversions(rep=rep, conversions=conversions))
    return tuple(out)


def _avg_days_to_approval(jobs: Iterable[EnrichedJob], tz: tzinfo) -> Optional[float]:
    spans = []
    for job in jobs:
        created = parse_date(job.created_date, tz)
        approved = parse_date(job.milestone_date, tz)
        if created is not None and approved is not None:
            spans.append((approved - created).days)
    if not spans:
        return None
    return round(sum(spans) / len(spans), 1)


def build_rep_performance(jobs: Sequence[EnrichedJob], ctx: AggregationContext) -> tuple[RepPerformance, ...]:
    mtd = [j for j in jobs if j.sales_owner and is_current_month(j.created_date, ctx.today, ctx.tz)]
    by_rep = _group_by_owner(mtd)

    out = []
    for rep in sorted(by_rep):
        rep_jobs = by_rep[rep]
        total = len(rep_jobs)
        classified = [j for j in rep_jobs if j.stage != UNCLASSIFIED]
        approved = [j for j in rep_jobs if j.stage == APPROVED_STAGE]
        out.append(RepPerformance(
            rep=rep,
            leads=total,
            ivs_rate=_pct(count_at_or_past(classified, 1), total),
            adjuster_rate=_pct(count_at_or_past(classified, 2), total),
            close_rate=_pct(count_at_or_past(classified, FINAL_STAGE_ORDER), total),
            approved_count=len(approved),
            approved_value=sum(j.contract_amount for j in approved),
            avg_days=_avg_days_to_approval(approved, ctx.tz),
        ))
    return tuple(out)


# ---------------------------------------------------------------------------
# Year to date
# ---------------------------------------------------------------------------


def compute_ytd(jobs: Sequence[EnrichedJob], ctx: AggregationContext) -> tuple[float, float]:
    """(sales_ytd, built_ytd). built_amount is already limited to this year's invoices."""
    sales_ytd = sum(
        j.contract_amount for j in jobs
        if j.milestone_category == APPROVED and is_current_year(j.milestone_date, ctx.today, ctx.tz)
    )
    built_ytd = sum(j.built_amount for j in jobs if j.built_amount > 0)
    return sales_ytd, built_ytd


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


def build_state(
    jobs: Sequence[EnrichedJob],
    *,
    phase: str,
    phase_message: str,
    progress: int,
    ctx: AggregationContext,
    error: Optional[str] = None,
) -> EngineState:
    active = primary_view(jobs, ctx.inactive_reps)
    sales_ytd, built_ytd = compute_ytd(jobs, ctx)
    return EngineState(
        jobs=tuple(j.snapshot() for j in jobs),
        funnel=build_funnel(active),
        conversions=build_conversions(active, ctx),
        rep_performance=build_rep_performance(active, ctx),
        sales_ytd=sales_ytd,
        built_ytd=built_ytd,
        rep_funnel=build_rep_funnel(jobs, ctx),
        rep_conversions=build_rep_conversions(jobs, ctx),
        phase=phase,
        phase_message=phase_message,
        progress=progress,
        error=error,
    )
