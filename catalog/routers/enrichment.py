# catalog/routers/enrichment.py
# Fast ack + background run: POST returns the job id with 202, clients poll /status/{id}.

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from catalog.deps import get_db, get_enricher
from catalog.enrichment import create_job, get_job, run_enrichment_job
from catalog.schemas import EnrichmentRequest

router = APIRouter(prefix="/enrichment", tags=["enrichment"])


@router.post("/products", status_code=202)
def enrich_products(
    payload: EnrichmentRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    enricher=Depends(get_enricher),
):
    job = create_job(db, payload.product_ids)
    background_tasks.add_task(
        run_enrichment_job, job.id, request.app.state.session_factory, enricher
    )
    return {"jobId": job.id, "message": "Enrichment job started"}


@router.get("/status/{job_id}")
def enrichment_status(job_id: int, db: Session = Depends(get_db)):
    job = get_job(db, job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Enrichment job not found")
    return job.to_dict()
