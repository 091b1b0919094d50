import enum

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric, Text, JSON
from sqlalchemy.sql import func

from sabores.database import Base


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"


# Estado que devuelve la pasarela cuando el PIX fue pagado
GATEWAY_COMPLETED_STATUSES = {"CONCLUIDA"}


class Order(Base):
    """
    Pedido de la tienda con el cobro PIX embebido.
    El estado de pago solo avanza: pending -> completed.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)

    # [{"product_id": 1, "variant_id": "...", "variant_index": 0, "quantity": 2}, ...]
    items = Column(JSON, nullable=False, default=list)
    customer = Column(JSON, nullable=True)
    total = Column(Numeric(10, 2), nullable=False)

    # --- Pago PIX ---
    txid = Column(String, unique=True, index=True, nullable=True)
    loc_id = Column(String, nullable=True)
    qr_code = Column(Text, nullable=True)        # copia y pega
    qr_code_image = Column(Text, nullable=True)  # data URI
    payment_status = Column(String, default=PaymentStatus.PENDING.value, nullable=False)
    gateway_status = Column(String, nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    # Marca de idempotencia: el stock de este pedido ya se descontó
    stock_processed = Column(Boolean, default=False, nullable=False)
    stock_processed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def is_completed(self) -> bool:
        return self.payment_status == PaymentStatus.COMPLETED.value
