# sabores/crud/orders.py
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError
from sqlalchemy import update
from sqlalchemy.orm import Session

from sabores.cache import ProductCache
from sabores.crud.inventory import apply_stock_items
from sabores.models import GATEWAY_COMPLETED_STATUSES, Order, PaymentStatus
from sabores.pix import PixGateway
from sabores.schemas.orders import OrderItemIn
from sabores.utils.reconcile import ReconcileResult, StockItem

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


# -----------------------------
# Items
# -----------------------------
def parse_stock_items(raw_items: Any) -> Tuple[List[OrderItemIn], int]:
    """Valida cada item por separado. Devuelve (válidos, cantidad descartada)."""
    if not isinstance(raw_items, list):
        return [], 0
    valid, invalid = [], 0
    for raw in raw_items:
        try:
            valid.append(OrderItemIn.model_validate(raw))
        except ValidationError as e:
            invalid += 1
            logger.warning(f"⚠️ Item inválido descartado: {raw!r} ({e.error_count()} errores)")
    return valid, invalid


def order_stock_items(order: Order) -> List[StockItem]:
    items = []
    for record in order.items or []:
        items.append(StockItem(
            product_id=record["product_id"],
            quantity=record["quantity"],
            variant_id=record.get("variant_id"),
            variant_index=record.get("variant_index"),
        ))
    return items


# -----------------------------
# Consultas
# -----------------------------
def get_order(db: Session, order_id: int) -> Optional[Order]:
    return db.query(Order).filter(Order.id == order_id).first()


def get_order_by_txid(db: Session, txid: str) -> Optional[Order]:
    return db.query(Order).filter(Order.txid == txid).first()


def list_orders(db: Session, limit: int = 50) -> List[Order]:
    return db.query(Order).order_by(Order.id.desc()).limit(limit).all()


def create_order(
    db: Session,
    items: List[OrderItemIn],
    customer: Dict[str, Any],
    total: Decimal,
    charge: Dict[str, Any],
) -> Order:
    order = Order(
        items=[item.to_record() for item in items],
        customer=customer,
        total=total,
        txid=charge["txid"],
        loc_id=charge.get("loc_id"),
        qr_code=charge.get("qr_code"),
        payment_status=PaymentStatus.PENDING.value,
        gateway_status=charge.get("status"),
    )
    db.add(order)
    db.commit()
    db.refresh(order)
    return order


# -----------------------------
# Idempotencia del descuento
# -----------------------------
def claim_stock_processing(db: Session, order_id: int) -> bool:
    """
    Marca el pedido como "stock procesado" solo si nadie lo hizo antes.
    El UPDATE condicional es atómico: de dos señales simultáneas
    (consulta + webhook) solo una gana.
    """
    stmt = (
        update(Order)
        .where(Order.id == order_id, Order.stock_processed.is_(False))
        .values(stock_processed=True, stock_processed_at=_now())
        .execution_options(synchronize_session=False)
    )
    claimed = db.execute(stmt).rowcount == 1
    db.commit()
    return claimed


def release_stock_claim(db: Session, order_id: int) -> None:
    db.execute(
        update(Order)
        .where(Order.id == order_id)
        .values(stock_processed=False, stock_processed_at=None)
        .execution_options(synchronize_session=False)
    )
    db.commit()


def process_order_stock(db: Session, order: Order, cache: Optional[ProductCache] = None) -> Optional[ReconcileResult]:
    """
    Descuenta el stock de un pedido pagado, una sola vez por pedido.
    Devuelve None si ya estaba procesado. Si el descuento falla se libera
    la marca para que otra señal pueda reintentar, y el error se propaga.
    """
    if not claim_stock_processing(db, order.id):
        logger.info(f"ℹ️ Stock del pedido {order.id} ya procesado, se omite")
        return None
    try:
        result = apply_stock_items(db, order_stock_items(order), reference=f"pedido {order.id}")
    except Exception:
        logger.exception(f"❌ Error descontando stock del pedido {order.id}")
        release_stock_claim(db, order.id)
        raise
    if cache is not None:
        cache.invalidate()
    db.refresh(order)
    return result


# -----------------------------
# Estado del pago
# -----------------------------
def mark_completed(db: Session, order: Order, gateway_status: Optional[str] = None) -> bool:
    """pending -> completed. Devuelve True solo si hubo transición."""
    if gateway_status:
        order.gateway_status = gateway_status
    if order.is_completed:
        db.commit()
        return False
    order.payment_status = PaymentStatus.COMPLETED.value
    order.paid_at = _now()
    db.commit()
    db.refresh(order)
    logger.info(f"✅ Pedido {order.id} pagado (txid={order.txid})")
    return True


async def refresh_payment_status(
    db: Session,
    gateway: PixGateway,
    order: Order,
    cache: Optional[ProductCache] = None,
) -> bool:
    """
    Consulta el estado en la pasarela. Solo al pasar a "completed" se
    descuenta el stock. Devuelve True si el stock se descontó en esta llamada.

    Todo lo que toca la BD corre en el threadpool; en el loop solo queda
    la llamada a la pasarela.
    """
    if order.is_completed:
        # Pagado antes pero el descuento falló: se reintenta aquí
        if not order.stock_processed:
            return await run_in_threadpool(_process_if_claimed, db, order, cache)
        return False

    gateway_status = await gateway.get_charge_status(order.txid)
    if gateway_status not in GATEWAY_COMPLETED_STATUSES:
        if gateway_status != order.gateway_status:
            order.gateway_status = gateway_status
            await run_in_threadpool(db.commit)
        return False

    if await run_in_threadpool(mark_completed, db, order, gateway_status):
        return await run_in_threadpool(_process_if_claimed, db, order, cache)
    return False


def _process_if_claimed(db: Session, order: Order, cache: Optional[ProductCache]) -> bool:
    return process_order_stock(db, order, cache) is not None


def confirm_payment_by_txid(db: Session, txid: str, cache: Optional[ProductCache] = None) -> Optional[Order]:
    """Webhook: marca el pedido como pagado y descuenta el stock."""
    order = get_order_by_txid(db, txid)
    if order is None:
        logger.warning(f"⚠️ Webhook PIX con txid desconocido: {txid}")
        return None
    mark_completed(db, order, "CONCLUIDA")
    process_order_stock(db, order, cache)
    return order
