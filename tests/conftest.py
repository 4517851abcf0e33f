"""
Shared fixtures for the sales cycle test suite.

FakeCrmClient stands in for the AccuLynx client: canned /jobs pages per
milestone, canned detail responses per endpoint, and concurrency tracking.
Unknown detail endpoints answer with a 404 error, so enrichment for jobs a
test doesn't care about simply fails quietly.
"""
from __future__ import annotations

import asyncio
from datetime import date, datetime, timezone
from typing import Any, Optional

import pytest

from salescycle.adapters.acculynx.client import AccuLynxAPIError
from salescycle.config import Settings


class FakeCrmClient:
    def __init__(
        self,
        jobs_by_milestone: Optional[dict[str, Any]] = None,
        details: Optional[dict[str, Any]] = None,
        users: Any = None,
    ) -> None:
        self.jobs_by_milestone = jobs_by_milestone or {}
        self.details = details or {}
        self.users = users if users is not None else []
        self.calls: list[tuple[str, str, dict[str, Any]]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def paginated_fetch(self, endpoint: str, params: Optional[dict[str, Any]], max_items: int) -> dict[str, Any]:
        self.calls.append(("paginated", endpoint, dict(params or {})))
        await asyncio.sleep(0)
        if endpoint == "/users":
            if isinstance(self.users, Exception):
                raise self.users
            return {"items": list(self.users), "count": len(self.users)}

        items = self.jobs_by_milestone.get((params or {}).get("milestones"), [])
        if isinstance(items, Exception):
            raise items
        return {"items": list(items)[:max_items], "count": len(items)}

    async def detail_fetch(self, endpoint: str, params: Optional[dict[str, Any]] = None) -> Any:
        self.calls.append(("detail", endpoint, dict(params or {})))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # Yield so tasks in the same batch overlap
            await asyncio.sleep(0)
            if endpoint not in self.details:
                raise AccuLynxAPIError(404, "not found")
            value = self.details[endpoint]
            if isinstance(value, Exception):
                raise value
            return value
        finally:
            self.in_flight -= 1

    def detail_calls(self, suffix: str) -> list[str]:
        return [c[1] for c in self.calls if c[0] == "detail" and c[1].endswith(suffix)]


def raw_job(job_id: str, milestone: str, created: str = "", milestone_date: str = "", **extra: Any) -> dict[str, Any]:
    payload = {
        "id": job_id,
        "jobName": f"Job {job_id}",
        "jobNumber": job_id.upper(),
        "currentMilestone": milestone,
        "createdDate": created,
        "milestoneDate": milestone_date,
    }
    payload.update(extra)
    return payload


@pytest.fixture
def make_client():
    return FakeCrmClient


@pytest.fixture
def today() -> date:
    return datetime.now(timezone.utc).date()


@pytest.fixture
def this_month(today: date) -> str:
    """An ISO timestamp inside the current UTC month."""
    return f"{today.isoformat()}T00:00:00Z"


@pytest.fixture
def last_year(today: date) -> str:
    return f"{today.year - 1}-06-15T12:00:00Z"


@pytest.fixture
def engine_settings() -> Settings:
    return Settings(
        acculynx_api_key="test-key",
        max_jobs_per_milestone=500,
        max_users=100,
        enrichment_batch_size=5,
        inactive_reps=frozenset(),
        report_timezone="UTC",
        dedup_jobs=False,
    )
