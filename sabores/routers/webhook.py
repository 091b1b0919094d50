import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from sabores.cache import ProductCache
from sabores.crud.orders import confirm_payment_by_txid
from sabores.database import get_db
from sabores.routers.products import get_product_cache

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/pix")
def pix_webhook(
    payload: Optional[Dict[str, Any]] = Body(None),
    db: Session = Depends(get_db),
    cache: ProductCache = Depends(get_product_cache),
):
    """
    Notificación de la pasarela: {"pix": [{"txid": "...", "valor": "...", ...}]}.
    Al registrar el webhook la pasarela manda un POST sin "pix"; se responde 200.

    Cada notificación se procesa por separado. Si una falla, el resto del
    lote sigue y el txid vuelve en "failed"; el descuento pendiente se
    reintenta en la próxima consulta de estado del pedido.
    """
    notifications = (payload or {}).get("pix") or []
    if not notifications:
        logger.info("ℹ️ Webhook PIX sin notificaciones (verificación)")
        return {"success": True, "processed": 0, "failed": []}

    processed = 0
    failed = []
    for notification in notifications:
        txid = notification.get("txid") if isinstance(notification, dict) else None
        if not txid:
            continue
        try:
            order = confirm_payment_by_txid(db, txid, cache)
        except Exception as e:
            db.rollback()
            logger.error(f"❌ Error procesando webhook PIX txid={txid}: {e}")
            failed.append(txid)
            continue
        if order is not None:
            processed += 1

    return {"success": not failed, "processed": processed, "failed": failed}
