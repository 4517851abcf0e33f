"""
Enrichment phases: status -> sales owner -> financials -> invoices.

Each phase picks its subset of job indices and fans out in fixed batches.
A worker reads its remote data first and only then writes its own fields,
so a failed call leaves the job exactly as it was. Failures are counted and
logged, never retried, never raised.

Progress bands per phase (start, batch band start, band width, end):
  status       20, 20, 25, 45
  sales owner  50/55, 55, 15, 70
  financials   72, 72, 18, 90
  invoices     91, 91, 8, -
"""
from __future__ import annotations

import logging
import math
from typing import Any, Awaitable, Callable

from salescycle.config import Settings
from salescycle.engine.batching import batch_process
from salescycle.engine.dates import is_current_year, report_tz, today_in
from salescycle.engine.directory import load_rep_directory
from salescycle.engine.extractors import (
    as_item_list,
    contract_value,
    extract_invoice_amount,
    extract_status_name,
    financials_reference_id,
    pick_representative,
    representative_user_id,
)
from salescycle.engine.models import (
    ENRICHING_FINANCIALS,
    ENRICHING_INVOICES,
    ENRICHING_SALES_OWNER,
    ENRICHING_STATUS,
    EnrichedJob,
)
from salescycle.engine.stages import LEAD, POST_APPROVED_CATEGORIES, PROSPECT, UNKNOWN, classify
from salescycle.engine.trace_logger import log_phase_summary

logger = logging.getLogger(__name__)

# emit(phase, message, progress)
Emit = Callable[[str, str, int], None]


def band_progress(band_start: int, band_width: int, done: int, total: int) -> int:
    """Map phase-local done/total linearly into [band_start, band_start + band_width]."""
    if total <= 0:
        return band_start
    return band_start + int(math.floor(done / total * band_width + 0.5))


class EnrichmentOrchestrator:
    def __init__(
        self,
        client: Any,
        jobs: list[EnrichedJob],
        emit: Emit,
        settings: Settings,
        run_id: str = "",
    ) -> None:
        self.client = client
        self.jobs = jobs
        self.emit = emit
        self.settings = settings
        self.run_id = run_id
        self.batch_size = settings.enrichment_batch_size
        self._user_names: dict[str, str] = {}

    async def run(self) -> None:
        await self.enrich_status()
        await self.enrich_sales_owner()
        await self.enrich_financials()
        await self.enrich_invoices()

    def _select(self, predicate: Callable[[EnrichedJob], bool]) -> list[int]:
        return [i for i, job in enumerate(self.jobs) if predicate(job)]

    async def _run_phase(
        self,
        phase: str,
        label: str,
        indices: list[int],
        worker: Callable[[int], Awaitable[None]],
        band_start: int,
        band_width: int,
    ) -> None:
        def on_batch_done(done: int, total: int) -> None:
            self.emit(phase, f"{label}: {done}/{total} jobs", band_progress(band_start, band_width, done, total))

        failed = await batch_process(indices, worker, self.batch_size, on_batch_done)
        logger.info("%s: %d jobs, %d failed", phase, len(indices), failed)
        log_phase_summary(self.run_id, phase, attempted=len(indices), failed=failed)

    # -----------------------------------------------------------------------
    # Status
    # -----------------------------------------------------------------------

    async def _status_worker(self, index: int) -> None:
        job = self.jobs[index]
        result = await self.client.detail_fetch(
            f"/jobs/{job.id}/milestones/current", {"includes": "status"}
        )
        status_name = extract_status_name(result)
        job.status_name = status_name
        job.stage = classify(job.milestone_category, status_name)

    async def enrich_status(self) -> None:
        needs = self._select(lambda j: j.milestone_category in (LEAD, PROSPECT))
        if needs:
            self.emit(ENRICHING_STATUS, f"Loading status for {len(needs)} jobs...", 20)
            await self._run_phase(ENRICHING_STATUS, "Status", needs, self._status_worker, 20, 25)
        self.emit(ENRICHING_STATUS, "Status enrichment complete", 45)

    # -----------------------------------------------------------------------
    # Sales owner
    # -----------------------------------------------------------------------

    async def _owner_worker(self, index: int) -> None:
        job = self.jobs[index]
        result = await self.client.detail_fetch(f"/jobs/{job.id}/representatives")
        user_id = representative_user_id(pick_representative(result))
        if user_id:
            job.sales_owner = self._user_names.get(user_id, "")

    async def enrich_sales_owner(self) -> None:
        needs = self._select(lambda j: j.milestone_category != UNKNOWN)
        if needs:
            self.emit(ENRICHING_SALES_OWNER, "Loading user directory...", 50)
            self._user_names = await load_rep_directory(self.client, self.settings.max_users)
            self.emit(ENRICHING_SALES_OWNER, f"Matching reps for {len(needs)} jobs...", 55)
            await self._run_phase(ENRICHING_SALES_OWNER, "Sales owners", needs, self._owner_worker, 55, 15)
        self.emit(ENRICHING_SALES_OWNER, "Sales owner enrichment complete", 70)

    # -----------------------------------------------------------------------
    # Financials
    # -----------------------------------------------------------------------

    async def _financials_worker(self, index: int) -> None:
        job = self.jobs[index]
        result = await self.client.detail_fetch(f"/jobs/{job.id}/financials")
        if not result:
            return

        value = contract_value(result)
        if value is None:
            # /jobs/{id}/financials may only link to the full record
            ref = financials_reference_id(result)
            if not ref:
                return
            value = contract_value(await self.client.detail_fetch(f"/financials/{ref}"))
        if value is not None:
            job.contract_amount = value

    async def enrich_financials(self) -> None:
        needs = self._select(lambda j: j.milestone_category != UNKNOWN)
        if needs:
            self.emit(ENRICHING_FINANCIALS, f"Loading financials for {len(needs)} jobs...", 72)
            await self._run_phase(ENRICHING_FINANCIALS, "Financials", needs, self._financials_worker, 72, 18)
        self.emit(ENRICHING_FINANCIALS, "Financial enrichment complete", 90)

    # -----------------------------------------------------------------------
    # Invoices
    # -----------------------------------------------------------------------

    def _invoice_worker(self, tz: Any) -> Callable[[int], Awaitable[None]]:
        today = today_in(tz)

        async def worker(index: int) -> None:
            job = self.jobs[index]
            result = await self.client.detail_fetch(f"/jobs/{job.id}/invoices")
            invoices = [inv for inv in as_item_list(result) if isinstance(inv, dict)]
            if not invoices:
                return

            dates = sorted(
                inv["invoiceDate"] for inv in invoices
                if isinstance(inv.get("invoiceDate"), str) and inv["invoiceDate"]
            )
            built = sum(
                extract_invoice_amount(inv) for inv in invoices
                if is_current_year(inv.get("invoiceDate"), today, tz)
            )

            if dates:
                job.invoice_date = dates[0]
            job.built_amount = built

        return worker

    async def enrich_invoices(self) -> None:
        needs = self._select(lambda j: j.milestone_category in POST_APPROVED_CATEGORIES)
        if not needs:
            return
        self.emit(ENRICHING_INVOICES, f"Loading invoice dates for {len(needs)} jobs...", 91)
        worker = self._invoice_worker(report_tz(self.settings.report_timezone))
        await self._run_phase(ENRICHING_INVOICES, "Invoices", needs, worker, 91, 8)
