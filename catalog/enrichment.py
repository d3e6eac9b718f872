# catalog/enrichment.py
# Enrichment job lifecycle: PENDING -> PROCESSING -> COMPLETED | FAILED.
# The HTTP layer creates the job and schedules run_enrichment_job in the background;
# pollers only ever read the row through get_job.

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from sqlalchemy.orm import Session

from catalog.models import Attribute, EnrichmentJob, JobStatus, Product
from catalog.validators import is_empty_value

logger = logging.getLogger(__name__)

PROGRESS_STARTED = 5
PROGRESS_SPAN = 90
PROGRESS_DONE = 100


class InvalidJobTransition(RuntimeError):
    pass


def create_job(db: Session, product_ids: Iterable[int]) -> EnrichmentJob:
    job = EnrichmentJob(product_ids=list(product_ids), status=JobStatus.PENDING, progress=0)
    db.add(job)
    db.commit()
    db.refresh(job)
    logger.info(f"Enrichment job #{job.id} created for {len(job.product_ids)} product(s)")
    return job


def get_job(db: Session, job_id: int) -> Optional[EnrichmentJob]:
    return db.get(EnrichmentJob, job_id)


def _transition(db: Session, job: EnrichmentJob, status: JobStatus, **fields) -> None:
    current = JobStatus(job.status)
    if not current.can_transition_to(status):
        raise InvalidJobTransition(f"job #{job.id}: {current.value} -> {status.value}")
    job.status = status
    for key, value in fields.items():
        setattr(job, key, value)
    db.commit()


def _set_progress(db: Session, job: EnrichmentJob, progress: float) -> None:
    # progress never moves backwards
    if progress > job.progress:
        job.progress = progress
        db.commit()


def _load_products(db: Session, product_ids: list) -> dict:
    rows = db.query(Product).filter(Product.id.in_(product_ids)).all()
    return {p.id: p for p in rows}


def _merge_fresh(db: Session, product: Product, before: dict, merged: dict) -> dict:
    """
    Re-read the bag and the attribute names after the AI call, then add only the
    keys the call produced that are still empty. Keys outside the schema are dropped.
    """
    db.refresh(product)
    schema_names = {name for (name,) in db.query(Attribute.name).all()}
    fresh = {k: v for k, v in (product.attributes or {}).items() if k in schema_names}
    for key, value in merged.items():
        if key not in schema_names or before.get(key) == value:
            continue
        if is_empty_value(fresh.get(key)):
            fresh[key] = value
    return fresh


def _process_job(db: Session, job: EnrichmentJob, enricher) -> None:
    _transition(db, job, JobStatus.PROCESSING, progress=PROGRESS_STARTED)
    logger.info(f"Enrichment job #{job.id} processing")

    product_ids = list(job.product_ids)
    products = _load_products(db, product_ids)
    required = [a for a in db.query(Attribute).order_by(Attribute.id).all() if a.is_required]

    total = len(product_ids)
    enriched = 0
    for index, product_id in enumerate(product_ids):
        _set_progress(db, job, PROGRESS_STARTED + (index / total) * PROGRESS_SPAN)

        product = products.get(product_id)
        if product is None:
            logger.warning(f"Enrichment job #{job.id}: product {product_id} not found")
            continue

        try:
            before = dict(product.attributes or {})
            merged = enricher.enrich(product, required)
            product.attributes = _merge_fresh(db, product, before, merged)
            product.ai_enriched = True
            db.commit()
            enriched += 1
        except Exception:
            db.rollback()
            logger.exception(f"Enrichment job #{job.id}: product {product_id} failed")

    _transition(
        db,
        job,
        JobStatus.COMPLETED,
        progress=PROGRESS_DONE,
        result={"enrichedCount": enriched, "failedCount": total - enriched},
    )
    logger.info(f"Enrichment job #{job.id} completed: {enriched}/{total} enriched")


def _mark_failed(session_factory: Callable[[], Session], job_id: int, message: str) -> None:
    db = session_factory()
    try:
        job = get_job(db, job_id)
        if job is None or JobStatus(job.status).is_terminal:
            return
        _transition(db, job, JobStatus.FAILED, result={"error": message})
        logger.error(f"Enrichment job #{job_id} failed: {message}")
    finally:
        db.close()


def run_enrichment_job(job_id: int, session_factory: Callable[[], Session], enricher) -> None:
    """
    Background entry point. Runs a PENDING job to a terminal state using its own
    session. Per-product errors are counted; anything else fails the job.
    """
    db = session_factory()
    try:
        job = get_job(db, job_id)
        if job is None:
            raise LookupError(f"Enrichment job #{job_id} not found")
        if JobStatus(job.status) != JobStatus.PENDING:
            logger.warning(f"Enrichment job #{job_id} is {JobStatus(job.status).value}; not running it again")
            return
        _process_job(db, job, enricher)
    except Exception as e:
        db.rollback()
        logger.exception(f"Error in enrichment job #{job_id}")
        _mark_failed(session_factory, job_id, str(e) or type(e).__name__)
    finally:
        db.close()
