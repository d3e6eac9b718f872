# catalog/seed.py
# Seed the system-generated attributes and a few sample products.
# Usage: python -m catalog.seed

from sqlalchemy.orm import Session

from catalog import models  # noqa: F401
from catalog.database import Base, SessionLocal, engine
from catalog.models import Attribute, AttributeType, Product
from catalog.utils import logger

SEED_ATTRIBUTES = [
    {"name": "Item Weight", "type": AttributeType.MEASURE, "unit": "G"},
    {"name": "Ingredients", "type": AttributeType.LONG_TEXT},
    {"name": "Product Description", "type": AttributeType.RICH_TEXT},
    {
        "name": "Storage Requirements",
        "type": AttributeType.SINGLE_SELECT,
        "options": ["Dry Storage", "Deep Frozen", "Ambient Storage", "Frozen Food Storage"],
    },
    {"name": "Items per Package", "type": AttributeType.NUMBER},
    {"name": "Color", "type": AttributeType.SHORT_TEXT},
    {"name": "Material", "type": AttributeType.SHORT_TEXT},
    {"name": "Width", "type": AttributeType.MEASURE, "unit": "CM"},
    {"name": "Height", "type": AttributeType.MEASURE, "unit": "CM"},
    {"name": "Warranty", "type": AttributeType.NUMBER},
]

SEED_PRODUCTS = [
    {
        "name": "Instant rice fettuccine",
        "brand": "Koka",
        "barcode": None,
        "images": [
            "https://kokanoodles.com/wp-content/uploads/2024/09/KRL4_Beef-Pho-Silk-Bowl_Slanted-2024.09.03.webp",
            "https://kokanoodles.com/wp-content/uploads/2024/09/KRL4_Beef-Pho-Silk-Bowl_Right-2024.09.03.webp",
        ],
    },
    {
        "name": "Black Neck Cord with Buckle",
        "brand": "Univet",
        "barcode": None,
        "images": [
            "https://www.alive-sr.co.uk/cdn/shop/products/Univetcords023346.jpg?v=1641471019&width=1200",
        ],
    },
    {
        "name": "Graphene Waterproof Sleep Protectors",
        "brand": "Equilibrium Tencel",
        "barcode": "9336473031366",
        "images": [],
    },
]


def seed(db: Session) -> tuple:
    """Insert missing seed rows; existing attributes (by name) and products
    (by name + brand) are left untouched. Returns (attributes_added, products_added)."""
    attrs_added = 0
    for row in SEED_ATTRIBUTES:
        if db.query(Attribute.id).filter(Attribute.name == row["name"]).first():
            continue
        db.add(Attribute(
            name=row["name"],
            type=row["type"],
            unit=row.get("unit"),
            options=list(row.get("options", [])),
            is_required=True,
            is_system_generated=True,
        ))
        attrs_added += 1

    products_added = 0
    for row in SEED_PRODUCTS:
        exists = (
            db.query(Product.id)
            .filter(Product.name == row["name"], Product.brand == row["brand"])
            .first()
        )
        if exists:
            continue
        db.add(Product(attributes={}, **row))
        products_added += 1

    db.commit()
    return attrs_added, products_added


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        attrs_added, products_added = seed(db)
    finally:
        db.close()
    logger.info(f"Seeding completed: {attrs_added} attribute(s), {products_added} product(s) added.")


if __name__ == "__main__":
    main()
