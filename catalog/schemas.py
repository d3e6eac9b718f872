# catalog/schemas.py
# Request bodies. Responses are built from the ORM rows' to_dict().

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from catalog.models import AttributeType


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    brand: str = Field(..., min_length=1)
    barcode: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    attributes: Dict[str, Any] = Field(default_factory=dict)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    brand: Optional[str] = Field(None, min_length=1)
    barcode: Optional[str] = None
    images: Optional[List[str]] = None
    attributes: Optional[Dict[str, Any]] = None


class AttributeCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    type: AttributeType
    unit: Optional[str] = None
    options: List[str] = Field(default_factory=list)
    is_required: bool = Field(False, alias="isRequired")


class AttributeUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(None, min_length=1)
    type: Optional[AttributeType] = None
    unit: Optional[str] = None
    options: Optional[List[str]] = None
    is_required: Optional[bool] = Field(None, alias="isRequired")


class EnrichmentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_ids: List[int] = Field(..., min_length=1, alias="productIds")
