# listing_ingest/api/routes.py
from fastapi import APIRouter, Depends, HTTPException, Request

from ..crawler import CrawlState
from ..schemas import CrawlReport, CrawlStatus

router = APIRouter()


def get_orchestrator(request: Request):
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Crawler not initialised")
    return orchestrator


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/crawl/status", response_model=CrawlStatus)
def crawl_status(orchestrator=Depends(get_orchestrator)):
    return orchestrator.status()


@router.post("/crawl", response_model=CrawlReport)
async def trigger_crawl(orchestrator=Depends(get_orchestrator)):
    if orchestrator.state is not CrawlState.IDLE:
        raise HTTPException(status_code=409, detail=f"Crawler is {orchestrator.state.value}")
    report = await orchestrator.trigger()
    if report is None:
        raise HTTPException(status_code=500, detail=orchestrator.last_error or "Crawl failed")
    return report
