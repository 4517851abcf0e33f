"""
Records flowing through a sales cycle run.

RawJobRecord is what AccuLynx hands back; EnrichedJob is the engine's
working copy, filled in phase by phase. Everything else is derived output
and frozen.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any, Optional

from salescycle.engine.stages import APPROVED, APPROVED_STAGE, UNCLASSIFIED, milestone_category

# Engine phases
FETCHING_JOBS = "fetching-jobs"
ENRICHING_STATUS = "enriching-status"
ENRICHING_SALES_OWNER = "enriching-sales-owner"
ENRICHING_FINANCIALS = "enriching-financials"
ENRICHING_INVOICES = "enriching-invoices"
COMPLETE = "complete"


def _text(payload: dict[str, Any], key: str) -> str:
    val = payload.get(key)
    if val is None:
        return ""
    return str(val).strip()


@dataclass(frozen=True)
class RawJobRecord:
    id: str
    job_name: str
    job_number: str
    current_milestone: str
    created_date: str
    milestone_date: str

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "RawJobRecord":
        return cls(
            id=_text(payload, "id"),
            job_name=_text(payload, "jobName"),
            job_number=_text(payload, "jobNumber"),
            current_milestone=_text(payload, "currentMilestone"),
            created_date=_text(payload, "createdDate"),
            milestone_date=_text(payload, "milestoneDate"),
        )


@dataclass
class EnrichedJob:
    id: str
    job_name: str
    job_number: str
    current_milestone: str
    created_date: str
    milestone_date: str
    milestone_category: str
    stage: str = UNCLASSIFIED
    status_name: str = ""
    invoice_date: str = ""
    sales_owner: str = ""
    contract_amount: float = 0.0
    built_amount: float = 0.0

    @classmethod
    def from_raw(cls, raw: RawJobRecord) -> "EnrichedJob":
        """Classify a raw record. Only APPROVED jobs get a stage up front."""
        category = milestone_category(raw.current_milestone)
        return cls(
            id=raw.id,
            job_name=raw.job_name or f"Job #{raw.job_number or raw.id}",
            job_number=raw.job_number,
            current_milestone=raw.current_milestone,
            created_date=raw.created_date,
            milestone_date=raw.milestone_date,
            milestone_category=category,
            stage=APPROVED_STAGE if category == APPROVED else UNCLASSIFIED,
        )

    def snapshot(self) -> "EnrichedJob":
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "jobName": self.job_name,
            "jobNumber": self.job_number,
            "currentMilestone": self.current_milestone,
            "createdDate": self.created_date,
            "milestoneDate": self.milestone_date,
            "invoiceDate": self.invoice_date,
            "stage": self.stage,
            "milestoneCategory": self.milestone_category,
            "statusName": self.status_name,
            "salesOwner": self.sales_owner,
            "contractAmount": self.contract_amount,
            "builtAmount": self.built_amount,
        }


@dataclass(frozen=True)
class FunnelRow:
    stage: str
    milestone: str
    count: int
    value: float
    order: int


@dataclass(frozen=True)
class ConversionRate:
    from_stage: str
    to_stage: str
    rate: int  # 0-100

    def to_dict(self) -> dict[str, Any]:
        return {"from": self.from_stage, "to": self.to_stage, "rate": self.rate}


@dataclass(frozen=True)
class RepPerformance:
    rep: str
    leads: int
    ivs_rate: int
    adjuster_rate: int
    close_rate: int
    approved_count: int
    approved_value: float
    avg_days: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "rep": self.rep,
            "leads": self.leads,
            "ivsRate": self.ivs_rate,
            "adjusterRate": self.adjuster_rate,
            "closeRate": self.close_rate,
            "approvedCount": self.approved_count,
            "approvedValue": self.approved_value,
            "avgDays": self.avg_days,
        }


@dataclass(frozen=True)
class RepFunnel:
    rep: str
    funnel: tuple[FunnelRow, ...]


@dataclass(frozen=True)
class RepConversions:
    rep: str
    conversions: tuple[ConversionRate, ...]


@dataclass(frozen=True)
class EngineState:
    """One complete, independent progress snapshot."""
    jobs: tuple[EnrichedJob, ...]
    funnel: tuple[FunnelRow, ...]
    conversions: tuple[ConversionRate, ...]
    rep_performance: tuple[RepPerformance, ...]
    sales_ytd: float
    built_ytd: float
    rep_funnel: tuple[RepFunnel, ...]
    rep_conversions: tuple[RepConversions, ...]
    phase: str
    phase_message: str
    progress: int
    error: Optional[str] = None

    def to_dict(self, include_jobs: bool = True) -> dict[str, Any]:
        out: dict[str, Any] = {
            "funnel": [asdict(row) for row in self.funnel],
            "conversions": [c.to_dict() for c in self.conversions],
            "repPerformance": [p.to_dict() for p in self.rep_performance],
            "salesYTD": self.sales_ytd,
            "builtYTD": self.built_ytd,
            "repFunnel": [
                {"rep": rf.rep, "funnel": [asdict(row) for row in rf.funnel]}
                for rf in self.rep_funnel
            ],
            "repConversions": [
                {"rep": rc.rep, "conversions": [c.to_dict() for c in rc.conversions]}
                for rc in self.rep_conversions
            ],
            "phase": self.phase,
            "phaseMessage": self.phase_message,
            "progress": self.progress,
            "error": self.error,
        }
        if include_jobs:
            out["jobs"] = [job.to_dict() for job in self.jobs]
        return out
