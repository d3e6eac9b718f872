# catalog/routers/attributes.py

import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from catalog.deps import get_db
from catalog.models import Attribute, Product
from catalog.schemas import AttributeCreate, AttributeUpdate
from catalog.validators import AttributeDefinitionError, check_attribute_definition

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/attributes", tags=["attributes"])

DUPLICATE_NAME = "An attribute with this name already exists"
# Columns that cannot be cleared with an explicit null
_NON_NULLABLE = {"name", "type", "options", "is_required"}


def _get_or_404(db: Session, attribute_id: int) -> Attribute:
    attribute = db.get(Attribute, attribute_id)
    if attribute is None:
        raise HTTPException(status_code=404, detail="Attribute not found")
    return attribute


def _check_definition(attr_type, unit, options) -> None:
    try:
        check_attribute_definition(attr_type, unit, options)
    except AttributeDefinitionError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _name_taken(db: Session, name: str, exclude_id=None) -> bool:
    query = db.query(Attribute.id).filter(Attribute.name == name)
    if exclude_id is not None:
        query = query.filter(Attribute.id != exclude_id)
    return query.first() is not None


def _rekey_product_bags(db: Session, old: str, new=None) -> int:
    """Move (or with new=None, drop) a bag key on every product. Returns rows touched."""
    touched = 0
    for product in db.query(Product).all():
        bag = dict(product.attributes or {})
        if old not in bag:
            continue
        value = bag.pop(old)
        if new is not None:
            bag[new] = value
        product.attributes = bag
        touched += 1
    return touched


def _commit_unique(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail=DUPLICATE_NAME)


@router.get("")
def list_attributes(db: Session = Depends(get_db)):
    return [a.to_dict() for a in db.query(Attribute).order_by(Attribute.id).all()]


@router.get("/{attribute_id}")
def get_attribute(attribute_id: int, db: Session = Depends(get_db)):
    return _get_or_404(db, attribute_id).to_dict()


@router.post("", status_code=201)
def create_attribute(payload: AttributeCreate, db: Session = Depends(get_db)):
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Name and type are required")
    _check_definition(payload.type, payload.unit, payload.options)
    if _name_taken(db, name):
        raise HTTPException(status_code=409, detail=DUPLICATE_NAME)

    attribute = Attribute(
        name=name,
        type=payload.type,
        unit=payload.unit,
        options=list(payload.options),
        is_required=payload.is_required,
        is_system_generated=False,
    )
    db.add(attribute)
    _commit_unique(db)
    db.refresh(attribute)
    logger.info(f"Attribute #{attribute.id} {attribute.name!r} created")
    return attribute.to_dict()


@router.put("/{attribute_id}")
def update_attribute(attribute_id: int, payload: AttributeUpdate, db: Session = Depends(get_db)):
    attribute = _get_or_404(db, attribute_id)
    changes = {
        k: v for k, v in payload.model_dump(exclude_unset=True).items()
        if v is not None or k not in _NON_NULLABLE
    }
    if "name" in changes:
        changes["name"] = changes["name"].strip()
        if not changes["name"]:
            raise HTTPException(status_code=400, detail="Name cannot be empty")
        if _name_taken(db, changes["name"], exclude_id=attribute.id):
            raise HTTPException(status_code=409, detail=DUPLICATE_NAME)

    _check_definition(
        changes.get("type", attribute.type),
        changes.get("unit", attribute.unit),
        changes.get("options", attribute.options),
    )
    if changes.get("name", attribute.name) != attribute.name:
        _rekey_product_bags(db, attribute.name, changes["name"])
    for key, value in changes.items():
        setattr(attribute, key, value)
    _commit_unique(db)
    db.refresh(attribute)
    return attribute.to_dict()


@router.delete("/{attribute_id}", status_code=204)
def delete_attribute(attribute_id: int, db: Session = Depends(get_db)):
    attribute = _get_or_404(db, attribute_id)
    cleared = _rekey_product_bags(db, attribute.name)
    db.delete(attribute)
    db.commit()
    logger.info(f"Attribute #{attribute_id} deleted; removed from {cleared} product(s)")
    return Response(status_code=204)
