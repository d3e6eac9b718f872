# catalog/routers/products.py

import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from catalog.deps import get_db
from catalog.models import Attribute, Product
from catalog.schemas import ProductCreate, ProductUpdate
from catalog.validators import AttributeValueError, coerce_value

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])

_NON_NULLABLE = {"name", "brand", "images", "attributes"}


def _get_or_404(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


def _checked_attribute_bag(db: Session, bag: dict) -> dict:
    """
    Manual writes must name existing attributes and carry well-typed values.
    The returned bag replaces the stored one whole; null values are left out of it.
    """
    if not bag:
        return {}
    schema = {a.name: a for a in db.query(Attribute).filter(Attribute.name.in_(list(bag))).all()}
    unknown = sorted(set(bag) - set(schema))
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown attributes: {', '.join(unknown)}")

    checked = {}
    for name, value in bag.items():
        if value is None:
            continue
        attr = schema[name]
        try:
            checked[name] = coerce_value(attr.type, value, attr.options)
        except AttributeValueError as e:
            raise HTTPException(status_code=400, detail=f"Invalid value for {name}: {e}")
    return checked


@router.get("")
def list_products(db: Session = Depends(get_db)):
    return [p.to_dict() for p in db.query(Product).order_by(Product.id).all()]


@router.get("/{product_id}")
def get_product(product_id: int, db: Session = Depends(get_db)):
    return _get_or_404(db, product_id).to_dict()


@router.post("", status_code=201)
def create_product(payload: ProductCreate, db: Session = Depends(get_db)):
    product = Product(
        name=payload.name,
        brand=payload.brand,
        barcode=payload.barcode,
        images=list(payload.images),
        attributes=_checked_attribute_bag(db, payload.attributes),
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    logger.info(f"Product #{product.id} {product.name!r} created")
    return product.to_dict()


@router.put("/{product_id}")
def update_product(product_id: int, payload: ProductUpdate, db: Session = Depends(get_db)):
    product = _get_or_404(db, product_id)
    changes = {
        k: v for k, v in payload.model_dump(exclude_unset=True).items()
        if v is not None or k not in _NON_NULLABLE
    }
    if "attributes" in changes:
        changes["attributes"] = _checked_attribute_bag(db, changes["attributes"])
    for key, value in changes.items():
        setattr(product, key, value)
    db.commit()
    db.refresh(product)
    return product.to_dict()


@router.delete("/{product_id}", status_code=204)
def delete_product(product_id: int, db: Session = Depends(get_db)):
    product = _get_or_404(db, product_id)
    db.delete(product)
    db.commit()
    logger.info(f"Product #{product_id} deleted")
    return Response(status_code=204)
