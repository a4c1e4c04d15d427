from fastapi import APIRouter, Depends, HTTPException, Header
from typing import Optional
import os

from server.models import PipelineStage
from server.services.observability import observability


def require_admin(x_admin_token: Optional[str] = Header(None)) -> None:
    expected = os.getenv("ADMIN_TOKEN")
    if expected and x_admin_token != expected:
        raise HTTPException(status_code=401, detail="unauthorized")


router = APIRouter(prefix="/internal", tags=["internal"], dependencies=[Depends(require_admin)])


@router.get("/metrics", summary="Internal metrics", description="Returns in-memory counters, timer summaries, and recent quiz normalization traces.")
def get_metrics():
    return observability.snapshot()


@router.get("/metrics/quiz-stages", summary="Quiz stage counts", description="How many agent replies passed through each normalization stage.")
def get_quiz_stage_counts():
    counters = observability.snapshot()["counters"]
    return {stage.value: counters.get(f"quiz_stage_{stage.value}_total", 0) for stage in PipelineStage}


@router.post("/metrics/reset", summary="Reset internal metrics", description="Clears in-memory counters and traces (admin-protected when ADMIN_TOKEN is set).")
def reset_metrics():
    observability.reset()
    return {"status": "ok"}
