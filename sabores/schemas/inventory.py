from pydantic import BaseModel
from typing import Optional
from datetime import datetime


# Output para leer el historial de descuentos
class AdjustmentRead(BaseModel):
    id: int
    product_id: int
    variant_id: Optional[str] = None
    variant_index: Optional[int] = None
    product_title: Optional[str] = None
    variant_name: Optional[str] = None
    old_stock: int
    new_stock: int
    quantity_requested: int
    quantity_consumed: int
    reference: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
