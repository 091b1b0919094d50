from typing import Any, Dict, List, Optional
from pydantic import BaseModel


# --- Catálogo (entrada) ---
# Los productos llegan en varios formatos (sabores[], colors[] viejos...),
# así que se reciben como dicts y se normalizan en utils/normalize.py
class ProductsSave(BaseModel):
    products: List[Dict[str, Any]] = []


class CategoriesSave(BaseModel):
    categories: List[Any] = []


class CategoryAdd(BaseModel):
    category: Optional[Dict[str, Any]] = None


# --- Catálogo (salida) ---
class VariantRead(BaseModel):
    id: str
    index: int
    name: str
    image: Optional[str] = None
    description: Optional[str] = None
    quantity: int


class ProductRead(BaseModel):
    id: int
    title: str
    category: Optional[str] = None
    price: float
    description: Optional[str] = None
    status: Optional[str] = None
    display_order: Optional[int] = None
    sabores: List[VariantRead] = []


class ProductList(BaseModel):
    products: List[ProductRead] = []


class CategoryRead(BaseModel):
    id: str
    name: str
    description: Optional[str] = None

    class Config:
        from_attributes = True


class CategoryList(BaseModel):
    categories: List[CategoryRead] = []
