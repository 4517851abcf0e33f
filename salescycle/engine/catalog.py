"""
Job catalog: one paginated /jobs fetch per tracked milestone, merged.

Any failing milestone fetch fails the whole catalog; a partial catalog
would skew every funnel number downstream.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from salescycle.engine.models import EnrichedJob, RawJobRecord
from salescycle.engine.stages import TRACKED_MILESTONES

logger = logging.getLogger(__name__)

JOBS_ENDPOINT = "/jobs"


async def fetch_milestone_jobs(client: Any, milestone: str, max_items: int) -> list[dict[str, Any]]:
    # Newest first so open jobs come before old closed ones
    result = await client.paginated_fetch(
        JOBS_ENDPOINT,
        {"milestones": milestone, "sortOrder": "Descending"},
        max_items,
    )
    return list((result or {}).get("items") or [])


async def fetch_job_catalog(
    client: Any,
    max_items: int = 500,
    dedup: bool = False,
) -> list[RawJobRecord]:
    """
    Fetch every tracked milestone concurrently and concatenate in
    TRACKED_MILESTONES order. Raises on the first failed fetch, after the
    remaining fetches have been cancelled and awaited.
    """
    tasks = [
        asyncio.ensure_future(fetch_milestone_jobs(client, m, max_items))
        for m in TRACKED_MILESTONES
    ]
    try:
        per_milestone = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    records: list[RawJobRecord] = []
    for milestone, items in zip(TRACKED_MILESTONES, per_milestone):
        logger.info("catalog: %s returned %d jobs", milestone, len(items))
        records.extend(RawJobRecord.from_payload(item) for item in items if isinstance(item, dict))

    if dedup:
        records = dedup_records(records)

    return records


def dedup_records(records: list[RawJobRecord]) -> list[RawJobRecord]:
    """Keep the first record per job id, preserving order."""
    seen: set[str] = set()
    out: list[RawJobRecord] = []
    for rec in records:
        if rec.id in seen:
            continue
        seen.add(rec.id)
        out.append(rec)
    if len(out) < len(records):
        logger.info("catalog: dropped %d duplicate job ids", len(records) - len(out))
    return out


def build_enriched_jobs(records: list[RawJobRecord]) -> list[EnrichedJob]:
    return [EnrichedJob.from_raw(rec) for rec in records]
