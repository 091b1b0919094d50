# sabores/routers/products.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sabores.cache import ProductCache
from sabores.crud.products import list_products, replace_all_products
from sabores.database import get_db
from sabores.schemas.products import ProductList, ProductsSave
from sabores.security import require_admin
from sabores.utils.normalize import normalize_products

logger = logging.getLogger(__name__)

router = APIRouter()

CACHE_HEADERS = {
    "Cache-Control": "public, max-age=120",
    "X-Content-Type-Options": "nosniff",
}


def get_product_cache(request: Request) -> ProductCache:
    return request.app.state.product_cache


def load_products_into_cache(db: Session, cache: ProductCache):
    products = list_products(db)
    cache.set(products)
    return products


# -----------------------------
# 1. Listar productos (con caché)
# -----------------------------
@router.get("", response_model=ProductList)
def read_products(
    response: Response,
    db: Session = Depends(get_db),
    cache: ProductCache = Depends(get_product_cache),
):
    response.headers.update(CACHE_HEADERS)

    cached = cache.get()
    if cached is not None:
        return {"products": cached}

    try:
        products = load_products_into_cache(db, cache)
    except SQLAlchemyError as e:
        # Lectura fallida: lista vacía en vez de error
        logger.error(f"Error leyendo productos: {e}")
        return {"products": []}
    return {"products": products}


# -----------------------------
# 2. Guardar catálogo completo
# -----------------------------
@router.post("")
def save_products(
    data: ProductsSave,
    db: Session = Depends(get_db),
    cache: ProductCache = Depends(get_product_cache),
    _token: str = Depends(require_admin),
):
    normalized = normalize_products(data.products)
    logger.info(f"💾 Guardando {len(normalized)} productos...")
    try:
        saved = replace_all_products(db, normalized)
    except SQLAlchemyError as e:
        logger.error(f"❌ Error al guardar productos: {e}")
        raise HTTPException(status_code=500, detail=f"Erro ao salvar produtos: {e}")
    finally:
        cache.invalidate()

    logger.info("✅ Productos guardados")
    return {"success": True, "message": f"{saved} produtos salvos"}
