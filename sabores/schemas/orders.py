from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field, model_validator

from sabores.utils.reconcile import StockItem


# --- Items del pedido ---
class OrderItemIn(BaseModel):
    """
    Un item: producto + sabor + cantidad.
    El sabor se identifica por id estable (variant_id) o, en clientes
    viejos, por su posición en la lista (variant_index / saborIndex).
    """
    product_id: int = Field(validation_alias=AliasChoices("product_id", "productId", "id"))
    variant_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("variant_id", "variantId", "saborId")
    )
    variant_index: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("variant_index", "saborIndex", "flavorIndex")
    )
    quantity: int

    @model_validator(mode="after")
    def check_item(self):
        if self.quantity <= 0:
            raise ValueError("quantity debe ser mayor que 0")
        if self.variant_id is None and (self.variant_index is None or self.variant_index < 0):
            raise ValueError("se requiere variant_id o variant_index")
        return self

    def to_stock_item(self) -> StockItem:
        return StockItem(
            product_id=self.product_id,
            quantity=self.quantity,
            variant_id=self.variant_id,
            variant_index=self.variant_index,
        )

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump()


# --- Crear cobro PIX ---
class CreatePixOrder(BaseModel):
    items: List[OrderItemIn] = Field(min_length=1)
    customer: Dict[str, Any] = {}
    total: Decimal = Field(gt=0)


class CreatePixResponse(BaseModel):
    success: bool
    order_id: int
    txid: str
    loc_id: Optional[str] = None
    qr_code: Optional[str] = None
    qr_code_image: Optional[str] = None
    status: str


# --- Actualización directa de stock ---
# items sin validar: los inválidos se descartan en vez de rechazar todo
class StockUpdateRequest(BaseModel):
    items: List[Any] = []
    order_id: Optional[int] = None


class OrderStatusResponse(BaseModel):
    order_id: int
    status: str
    gateway_status: Optional[str] = None
    stock_updated: bool = False


class OrderRead(BaseModel):
    id: int
    items: List[Dict[str, Any]] = []
    customer: Optional[Dict[str, Any]] = None
    total: Decimal
    txid: Optional[str] = None
    loc_id: Optional[str] = None
    qr_code: Optional[str] = None
    payment_status: str
    gateway_status: Optional[str] = None
    paid_at: Optional[datetime] = None
    stock_processed: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
