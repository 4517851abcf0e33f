from dataclasses import asdict, replace
from typing import Any, Optional

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from .adapters.acculynx.client import close_client, get_client, init_client
from .config import settings
from .engine.models import EngineState
from .engine.sales_cycle import SalesCycleEngine
from .engine.stages import STAGES

app = FastAPI(title="Sales Cycle Engine", version="0.1.0")

@app.on_event("startup")
async def _startup():
    await init_client()

@app.on_event("shutdown")
async def _shutdown():
    await close_client()

@app.get("/health")
async def health():
    return {"ok": True, "service": settings.service_name, "env": settings.env}

@app.get("/sales-cycle/stages")
async def list_stages():
    return {"stages": [asdict(stage) for stage in STAGES]}


class RunRequest(BaseModel):
    max_jobs_per_milestone: Optional[int] = Field(default=None, ge=1, le=5000)
    include_jobs: bool = False


@app.post("/sales-cycle/run")
async def run_sales_cycle(body: Optional[RunRequest] = None, client: Any = Depends(get_client)):
    """
    Run the engine to completion and return the final snapshot.

    Intermediate snapshots are only counted; this endpoint does not stream.
    """
    body = body or RunRequest()
    cfg = settings
    if body.max_jobs_per_milestone is not None:
        cfg = replace(settings, max_jobs_per_milestone=body.max_jobs_per_milestone)

    snapshots: list[EngineState] = []
    await SalesCycleEngine(client, cfg).run(snapshots.append)

    final = snapshots[-1]
    if final.error:
        raise HTTPException(status_code=502, detail=final.error)

    return {"snapshots": len(snapshots), "state": final.to_dict(include_jobs=body.include_jobs)}
