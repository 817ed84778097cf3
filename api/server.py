"""
FastAPI front for scanner actions without exposing Elasticsearch directly.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from pipeline.orchestrator import Orchestrator

log = logging.getLogger(__name__)

app = FastAPI(title="Range Scanner API", version="1.0")
orch = Orchestrator()


class ScanPayload(BaseModel):
    iprange: str
    ports: str
    concurrency: Optional[int] = Field(None, ge=1)


@app.post("/api/scan")
def api_scan(payload: ScanPayload):
    try:
        return orch.scan(payload.iprange, payload.ports, concurrency=payload.concurrency)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:  # noqa: BLE001
        log.exception("scan failed")
        raise HTTPException(status_code=500, detail="scan failed") from exc


@app.get("/api/report")
def api_report(host: Optional[str] = Query(None)):
    try:
        return {"hosts": orch.report(host)}
    except Exception as exc:  # noqa: BLE001
        log.exception("report failed")
        raise HTTPException(status_code=500, detail="report failed") from exc


@app.get("/api/health")
def api_health():
    try:
        return orch.verify()
    except Exception as exc:  # noqa: BLE001
        log.exception("health check failed")
        raise HTTPException(status_code=500, detail="health check failed") from exc
