# catalog/models.py
# Attribute schema, products with a sparse attribute bag, and enrichment jobs.

import enum
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Enum, Float, Integer, String

from catalog.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value is not None else None


class AttributeType(str, enum.Enum):
    SHORT_TEXT = "SHORT_TEXT"
    LONG_TEXT = "LONG_TEXT"
    RICH_TEXT = "RICH_TEXT"
    NUMBER = "NUMBER"
    SINGLE_SELECT = "SINGLE_SELECT"
    MULTIPLE_SELECT = "MULTIPLE_SELECT"
    MEASURE = "MEASURE"


TEXT_TYPES = {AttributeType.SHORT_TEXT, AttributeType.LONG_TEXT, AttributeType.RICH_TEXT}
SELECT_TYPES = {AttributeType.SINGLE_SELECT, AttributeType.MULTIPLE_SELECT}


class JobStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)

    def can_transition_to(self, target: "JobStatus") -> bool:
        return target in _JOB_TRANSITIONS[self]


_JOB_TRANSITIONS = {
    JobStatus.PENDING: {JobStatus.PROCESSING, JobStatus.FAILED},
    JobStatus.PROCESSING: {JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


class Attribute(Base):
    """
    Typed field that products can carry.
    - options: ordered choices, required for SINGLE_SELECT / MULTIPLE_SELECT
    - unit: declared unit, required for MEASURE
    - is_required: attribute takes part in AI enrichment
    - is_system_generated: seeded rather than user-created
    """
    __tablename__ = "attributes"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, index=True, nullable=False)
    type = Column(Enum(AttributeType, name="attribute_type"), nullable=False)
    unit = Column(String, nullable=True)
    options = Column(JSON, nullable=False, default=list)
    is_required = Column(Boolean, nullable=False, default=False)
    is_system_generated = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": AttributeType(self.type).value,
            "unit": self.unit,
            "options": list(self.options or []),
            "isRequired": bool(self.is_required),
            "isSystemGenerated": bool(self.is_system_generated),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<Attribute id={self.id} name={self.name!r} type={self.type}>"


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    brand = Column(String, nullable=False)
    barcode = Column(String, nullable=True)
    images = Column(JSON, nullable=False, default=list)       # URLs or data: URLs
    attributes = Column(JSON, nullable=False, default=dict)   # attribute name -> typed value
    ai_enriched = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "brand": self.brand,
            "barcode": self.barcode,
            "images": list(self.images or []),
            "attributes": dict(self.attributes or {}),
            "ai_enriched": bool(self.ai_enriched),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} brand={self.brand!r}>"


class EnrichmentJob(Base):
    """
    Background enrichment run over a fixed list of product ids.
    Only the worker writes to it; COMPLETED and FAILED are final.
    """
    __tablename__ = "enrichment_jobs"

    id = Column(Integer, primary_key=True)
    product_ids = Column(JSON, nullable=False)
    status = Column(Enum(JobStatus, name="enrichment_status"), nullable=False, default=JobStatus.PENDING)
    progress = Column(Float, nullable=False, default=0)
    result = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productIds": list(self.product_ids or []),
            "status": JobStatus(self.status).value,
            "progress": self.progress,
            "result": self.result,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<EnrichmentJob id={self.id} status={self.status} progress={self.progress}>"
