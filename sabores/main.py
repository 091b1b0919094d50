import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from sabores.cache import ProductCache
from sabores.config import get_settings
from sabores.crud.users import ensure_admin_credentials
from sabores.database import SessionLocal, engine
from sabores.logging_config import setup_logging
from sabores.models import Base
from sabores.pix import PixGateway
from sabores.routers import (
    auth, products, categories, orders, webhook,
    inventory, cache, debug
)

settings = get_settings()
setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

# 1. CREACIÓN AUTOMÁTICA DE TABLAS
Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = SessionLocal()
    try:
        ensure_admin_credentials(db, settings.admin_username, settings.admin_password)
    except Exception:
        # Sin admin la tienda sigue sirviendo el catálogo
        logger.exception("❌ Error al verificar credenciales admin")
    finally:
        db.close()

    logger.info(f"💾 Caché de productos activa: {settings.cache_ttl_seconds:.0f}s")
    if not settings.pix_configured:
        logger.warning("⚠️ Pasarela PIX sin configurar (PIX_CLIENT_ID/PIX_CLIENT_SECRET)")
    yield
    await app.state.pix_gateway.close()


app = FastAPI(
    title="Sabores API",
    description="Backend de la tienda: catálogo, pedidos y pagos PIX",
    version="3.0.0",
    lifespan=lifespan,
)

# 2. ESTADO COMPARTIDO (caché de productos y cliente PIX)
app.state.product_cache = ProductCache(ttl_seconds=settings.cache_ttl_seconds)
app.state.pix_gateway = PixGateway(settings)

# 3. CONFIGURACIÓN DE CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 4. REGISTRO DE ROUTERS
app.include_router(auth.router, prefix="/api/auth", tags=["🔑 Autenticação"])
app.include_router(products.router, prefix="/api/products", tags=["📦 Produtos"])
app.include_router(categories.router, prefix="/api/categories", tags=["📂 Categorias"])
app.include_router(orders.router, prefix="/api/orders", tags=["🛒 Pedidos"])
app.include_router(webhook.router, prefix="/api/webhook", tags=["💳 Webhook PIX"])
app.include_router(inventory.router, prefix="/api/inventory", tags=["🔄 Estoque"])
app.include_router(cache.router, prefix="/api/cache", tags=["💾 Cache"])
if settings.enable_debug_routes:
    logger.warning("⚠️ Rutas de depuración activas en /api/debug (sin autenticación)")
    app.include_router(debug.router, prefix="/api/debug", tags=["🐞 Debug"])


# --- 5. HEALTH CHECK ---
@app.get("/")
def health():
    return {
        "message": "🚀 Backend SABORES funcionando!",
        "status": "OK",
        "cache": f"Produtos em cache por {settings.cache_ttl_seconds:.0f}s",
        "categorias": "Sem cache - sempre atualizadas",
        "pix": "configurado" if settings.pix_configured else "não configurado",
    }


# --- 6. MANEJO DE ERRORES ---
@app.exception_handler(404)
async def not_found_exception_handler(request: Request, exc):
    detail = getattr(exc, "detail", None)
    if request.url.path.startswith("/api/") and detail in (None, "Not Found"):
        return JSONResponse(status_code=404, content={"detail": "Recurso não encontrado"})
    return JSONResponse(status_code=404, content={"detail": detail or "Not Found"})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("sabores.main:app", host="0.0.0.0", port=settings.port)
