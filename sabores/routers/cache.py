import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sabores.cache import ProductCache
from sabores.database import get_db
from sabores.routers.products import get_product_cache, load_products_into_cache

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/clear")
def clear_cache(cache: ProductCache = Depends(get_product_cache)):
    cache.invalidate()
    return {"success": True, "message": "Cache de produtos limpo com sucesso"}


@router.post("/refresh")
def refresh_cache(
    db: Session = Depends(get_db),
    cache: ProductCache = Depends(get_product_cache),
):
    cache.invalidate()
    try:
        products = load_products_into_cache(db, cache)
    except SQLAlchemyError as e:
        logger.error(f"❌ Error recargando la caché: {e}")
        raise HTTPException(status_code=500, detail=f"Erro ao recarregar cache: {e}")
    logger.info(f"🔄 Caché recargada con {len(products)} productos")
    return {"success": True, "message": f"Cache recarregado com {len(products)} produtos", "count": len(products)}
