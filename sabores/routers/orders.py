# sabores/routers/orders.py
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sabores.cache import ProductCache
from sabores.crud.inventory import apply_stock_items
from sabores.crud.orders import (
    create_order,
    get_order,
    list_orders,
    parse_stock_items,
    process_order_stock,
    refresh_payment_status,
)
from sabores.database import get_db
from sabores.models import Order
from sabores.pix import PixGateway, PixGatewayError, get_pix_gateway
from sabores.routers.products import get_product_cache
from sabores.schemas.orders import (
    CreatePixOrder,
    CreatePixResponse,
    OrderRead,
    OrderStatusResponse,
    StockUpdateRequest,
)
from sabores.security import require_admin

logger = logging.getLogger(__name__)

router = APIRouter()


# -----------------------------
# 1. Crear pedido + cobro PIX
# -----------------------------
# Las rutas async solo esperan a la pasarela; la BD va por el threadpool
def _save_qrcode(db: Session, order: Order, qr: Dict[str, Any]) -> Dict[str, Any]:
    order.qr_code = qr.get("qr_code") or order.qr_code
    order.qr_code_image = qr.get("qr_code_image")
    db.commit()
    db.refresh(order)
    return {
        "success": True,
        "order_id": order.id,
        "txid": order.txid,
        "loc_id": order.loc_id,
        "qr_code": order.qr_code,
        "qr_code_image": order.qr_code_image,
        "status": order.payment_status,
    }


@router.post("/create-pix", response_model=CreatePixResponse)
async def create_pix_order(
    data: CreatePixOrder,
    db: Session = Depends(get_db),
    gateway: PixGateway = Depends(get_pix_gateway),
):
    customer_name = (data.customer or {}).get("name") or "cliente"
    description = f"Pedido de {customer_name}"

    # 1. Cobro en la pasarela (con reintentos)
    try:
        charge = await gateway.create_charge(data.total, description=description)
    except PixGatewayError as e:
        logger.error(f"❌ Error creando cobro PIX: {e.message}")
        raise HTTPException(status_code=500, detail=f"Erro ao criar cobrança PIX: {e.message}")

    # 2. Pedido pendiente
    try:
        order = await run_in_threadpool(create_order, db, data.items, data.customer, data.total, charge)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Error guardando pedido (txid={charge['txid']}): {e}")
        raise HTTPException(status_code=500, detail=f"Erro ao salvar pedido: {e}")

    # 3. QR code (un solo intento)
    try:
        qr = await gateway.generate_qrcode(charge["loc_id"])
    except PixGatewayError as e:
        logger.error(f"❌ Error generando QR del pedido {order.id}: {e.message}")
        raise HTTPException(status_code=500, detail=f"Erro ao gerar QR Code PIX: {e.message}")

    response = await run_in_threadpool(_save_qrcode, db, order, qr)
    logger.info(f"🧾 Pedido {response['order_id']} creado, esperando pago (txid={response['txid']})")
    return response


# -----------------------------
# 2. Actualización directa de stock
# -----------------------------
def _manual_check(invalid: int, message: str) -> Dict[str, Any]:
    return {
        "success": True,
        "stock_updated": False,
        "needs_manual_check": True,
        "updated": 0,
        "invalid_items": invalid,
        "message": message,
    }


@router.post("/update-stock")
def update_stock(
    data: StockUpdateRequest,
    db: Session = Depends(get_db),
    cache: ProductCache = Depends(get_product_cache),
):
    """
    El cliente avisa que el pedido se cerró. Nunca devuelve error: si el
    descuento falla responde success con needs_manual_check para no
    bloquear el envío del pedido.

    Con un order_id existente se descuentan los items guardados en el
    pedido (una sola vez) y los items del body se ignoran. Sin order_id,
    o si el pedido no existe, se usan los items del body.
    """
    try:
        order = get_order(db, data.order_id) if data.order_id is not None else None
    except SQLAlchemyError as e:
        logger.exception("❌ Error buscando el pedido para actualizar stock")
        return _manual_check(0, f"Pedido registrado, estoque precisa de conferência manual: {e}")

    if order is not None:
        items, invalid = [], 0
    else:
        items, invalid = parse_stock_items(data.items)
        if not items:
            return {
                "success": True,
                "stock_updated": False,
                "needs_manual_check": invalid > 0,
                "updated": 0,
                "invalid_items": invalid,
                "message": "Nenhum item válido para atualizar",
            }

    try:
        if order is not None:
            result = process_order_stock(db, order, cache)
            if result is None:
                return {
                    "success": True,
                    "stock_updated": False,
                    "needs_manual_check": False,
                    "updated": 0,
                    "invalid_items": 0,
                    "message": "Estoque deste pedido já foi atualizado",
                }
        else:
            result = apply_stock_items(
                db,
                [item.to_stock_item() for item in items],
                reference="atualizacao manual",
            )
            cache.invalidate()
    except Exception as e:
        logger.exception("❌ Error actualizando stock")
        return _manual_check(invalid, f"Pedido registrado, estoque precisa de conferência manual: {e}")

    return {
        "success": True,
        "stock_updated": result.changed,
        "needs_manual_check": invalid > 0,
        "updated": len(result.adjustments),
        "invalid_items": invalid,
        "adjustments": [
            {
                "product_id": a.product_id,
                "variant_id": a.variant_id,
                "variant_index": a.variant_index,
                "old_stock": a.old_stock,
                "new_stock": a.new_stock,
                "consumed": a.consumed,
            }
            for a in result.adjustments
        ],
        "message": "Estoque atualizado",
    }


# -----------------------------
# 3. Consulta de pedidos
# -----------------------------
@router.get("", response_model=List[OrderRead])
def read_orders(
    limit: int = 50,
    db: Session = Depends(get_db),
    _token: str = Depends(require_admin),
):
    return list_orders(db, limit=limit)


@router.get("/{order_id}", response_model=OrderRead)
def read_order(
    order_id: int,
    db: Session = Depends(get_db),
    _token: str = Depends(require_admin),
):
    order = get_order(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Pedido não encontrado")
    return order


# -----------------------------
# 4. Estado del pago (polling)
# -----------------------------
def _status_response(order: Order, stock_updated: bool) -> Dict[str, Any]:
    return {
        "order_id": order.id,
        "status": order.payment_status,
        "gateway_status": order.gateway_status,
        "stock_updated": stock_updated,
    }


@router.get("/{order_id}/status", response_model=OrderStatusResponse)
async def order_status(
    order_id: int,
    db: Session = Depends(get_db),
    gateway: PixGateway = Depends(get_pix_gateway),
    cache: ProductCache = Depends(get_product_cache),
):
    order = await run_in_threadpool(get_order, db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Pedido não encontrado")

    try:
        stock_updated = await refresh_payment_status(db, gateway, order, cache)
    except PixGatewayError as e:
        logger.error(f"❌ Error consultando estado del pedido {order_id}: {e.message}")
        raise HTTPException(status_code=500, detail=f"Erro ao verificar pagamento: {e.message}")
    except Exception as e:
        # El pago ya quedó registrado; el stock se reintenta en la próxima señal
        logger.error(f"❌ Error descontando stock del pedido {order_id}: {e}")
        stock_updated = False

    return await run_in_threadpool(_status_response, order, stock_updated)
