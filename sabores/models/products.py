# sabores/models/products.py
import uuid

from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from sabores.database import Base


def new_variant_id() -> str:
    return uuid.uuid4().hex


# --- Categorías (id tipo slug: "doces", "salgados") ---
class Category(Base):
    __tablename__ = "categories"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)


# --- PRODUCTO ---
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False, index=True)
    # Referencia por id de categoría, sin FK: reemplazar categorías no debe tocar productos
    category = Column(String, nullable=True, index=True)
    price = Column(Numeric(10, 2), default=0)
    description = Column(Text, nullable=True)
    status = Column(String, default="active")
    display_order = Column(Integer, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    variants = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductVariant.position",
    )


# --- VARIANTES ("sabores") ---
class ProductVariant(Base):
    __tablename__ = "product_variants"

    id = Column(String(32), primary_key=True, default=new_variant_id)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)

    position = Column(Integer, nullable=False, default=0)  # índice dentro de la lista guardada
    name = Column(String, nullable=False)
    image = Column(String, nullable=True)
    description = Column(Text, nullable=True)

    quantity = Column(Integer, nullable=False, default=0)
    # Se incrementa en cada escritura de stock (control optimista)
    version = Column(Integer, nullable=False, default=1)

    product = relationship("Product", back_populates="variants")
