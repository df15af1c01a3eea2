# backend/schemas/stock_item.py
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List


# Scalar fields of the create/edit form, trimmed before the constraints are checked
class StockItemForm(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)
    category: Optional[str] = Field(None, max_length=255)
    qty: int = Field(..., ge=0)
    min_qty: int = Field(..., ge=0)
    location: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("category", "location", "notes")
    @classmethod
    def _blank_as_empty(cls, v: Optional[str]) -> str:
        return v or ""


# Body of PATCH /stock/{id}/qty
class QuantityUpdate(BaseModel):
    qty: int = Field(..., ge=0)


# External vocabulary of a stock item as handed to the UI
class StockItemOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    category: str
    qty: int
    min_qty: int = Field(alias="minQty")
    location: str
    notes: str
    low_stock: bool = Field(alias="lowStock")
    photos: List[str] = []
    photo_ids: List[int] = Field(default_factory=list, alias="photoIds")
    created_at: int = Field(alias="createdAt")
    updated_at: int = Field(alias="updatedAt")


class StockItemList(BaseModel):
    items: List[StockItemOut]


# Acknowledgment returned by every mutating endpoint
class ActionResult(BaseModel):
    type: str = "success"
    message: str
