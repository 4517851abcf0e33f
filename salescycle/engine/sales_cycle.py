"""
Sales cycle engine entrypoint.

  fetch catalog -> classify -> status -> sales owner -> financials -> invoices

Every emission handed to on_update is a full EngineState rebuilt from the
current job list. The run ends with exactly one "complete" snapshot, which
carries the error when the catalog could not be loaded.

Usage:
  engine = SalesCycleEngine(client)
  await engine.run(on_update)
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Optional

from salescycle.config import Settings, settings as default_settings
from salescycle.engine.aggregator import AggregationContext, build_state
from salescycle.engine.catalog import build_enriched_jobs, fetch_job_catalog
from salescycle.engine.enrichment import EnrichmentOrchestrator
from salescycle.engine.models import COMPLETE, FETCHING_JOBS, EngineState, EnrichedJob
from salescycle.engine.trace_logger import log_snapshot

logger = logging.getLogger(__name__)

OnUpdate = Callable[[EngineState], None]


class SalesCycleEngine:
    def __init__(self, client: Any, settings: Optional[Settings] = None) -> None:
        self.client = client
        self.settings = settings or default_settings

    async def run(self, on_update: OnUpdate) -> None:
        run_id = uuid.uuid4().hex[:12]
        jobs: list[EnrichedJob] = []

        def emit(phase: str, message: str, progress: int, error: Optional[str] = None) -> None:
            ctx = AggregationContext.from_settings(self.settings)
            state = build_state(
                jobs,
                phase=phase,
                phase_message=message,
                progress=progress,
                ctx=ctx,
                error=error,
            )
            log_snapshot(run_id, state)
            on_update(state)

        logger.info("Sales cycle run %s started", run_id)
        emit(FETCHING_JOBS, "Fetching jobs...", 5)

        try:
            records = await fetch_job_catalog(
                self.client,
                max_items=self.settings.max_jobs_per_milestone,
                dedup=self.settings.dedup_jobs,
            )
        except Exception as e:
            logger.error("Sales cycle run %s: job catalog fetch failed: %s", run_id, e)
            emit(COMPLETE, "", 0, error=str(e) or "Failed to fetch jobs")
            return

        jobs.extend(build_enriched_jobs(records))
        emit(FETCHING_JOBS, f"Found {len(jobs)} jobs", 15)

        orchestrator = EnrichmentOrchestrator(self.client, jobs, emit, self.settings, run_id=run_id)
        await orchestrator.run()

        emit(COMPLETE, "All data loaded", 100)
        logger.info("Sales cycle run %s complete: %d jobs", run_id, len(jobs))


async def load_sales_cycle_data(
    on_update: OnUpdate,
    client: Any = None,
    settings: Optional[Settings] = None,
) -> None:
    """Run the engine once, opening (and closing) an AccuLynx client if none is given."""
    cfg = settings or default_settings
    if client is not None:
        await SalesCycleEngine(client, cfg).run(on_update)
        return

    from salescycle.adapters.acculynx.client import AccuLynxClient

    if not cfg.acculynx_api_key:
        raise RuntimeError("ACCULYNX_API_KEY is not set")
    async with AccuLynxClient(cfg.acculynx_base_url, cfg.acculynx_api_key, cfg.acculynx_timeout) as own_client:
        await SalesCycleEngine(own_client, cfg).run(on_update)
