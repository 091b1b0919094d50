from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func

from sabores.database import Base


class StockAdjustment(Base):
    """Historial de descuentos de stock. Solo se inserta, nunca se edita."""
    __tablename__ = "stock_adjustments"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, nullable=False, index=True)
    variant_id = Column(String(32), nullable=True, index=True)
    variant_index = Column(Integer, nullable=True)

    # Copias de nombres: el catálogo se reemplaza completo en cada guardado
    product_title = Column(String, nullable=True)
    variant_name = Column(String, nullable=True)

    old_stock = Column(Integer, nullable=False)
    new_stock = Column(Integer, nullable=False)
    quantity_requested = Column(Integer, nullable=False)
    quantity_consumed = Column(Integer, nullable=False)

    reference = Column(String, nullable=True)  # "pedido 12", "pix <txid>"...
    created_at = Column(DateTime(timezone=True), server_default=func.now())
