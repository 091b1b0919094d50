# sabores/crud/inventory.py
import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from sabores.models import Product, ProductVariant, StockAdjustment
from sabores.utils.reconcile import (
    ProductSnapshot,
    ReconcileResult,
    StockItem,
    VariantSnapshot,
    reconcile,
)
from sabores.utils.retry import RetryPolicy

logger = logging.getLogger(__name__)


class StockConflictError(Exception):
    """Otra escritura cambió una variante entre la lectura y la escritura."""


# -----------------------------
# 1. Carga de la foto de inventario
# -----------------------------
def load_snapshot(db: Session, product_ids: Iterable[int]) -> Dict[int, ProductSnapshot]:
    """
    Lee los productos (con sus sabores) y los devuelve como objetos planos.
    Los ids que no existen simplemente no aparecen. Sin ids no hay consulta.
    """
    ids = {pid for pid in product_ids if pid is not None}
    if not ids:
        return {}

    rows = (
        db.query(Product)
        .options(selectinload(Product.variants))
        .filter(Product.id.in_(ids))
        .all()
    )
    snapshot = {}
    for p in rows:
        snapshot[p.id] = ProductSnapshot(
            id=p.id,
            title=p.title,
            variants=[
                VariantSnapshot(
                    id=v.id,
                    position=v.position,
                    name=v.name,
                    quantity=v.quantity,
                    version=v.version,
                )
                for v in p.variants
            ],
        )
    return snapshot


# -----------------------------
# 2. Escritura de cambios + historial
# -----------------------------
def persist_reconciliation(db: Session, result: ReconcileResult, reference: Optional[str] = None) -> None:
    """
    Escribe el stock nuevo de todas las variantes tocadas en UNA transacción.
    Cada UPDATE exige la misma versión que se leyó; si alguna fila cambió
    en el medio se deshace todo y se lanza StockConflictError.

    El historial se graba después y aparte: si falla, se registra en el log
    y el descuento de stock queda igual.
    """
    if not result.changed:
        return

    try:
        for v in result.changed_variants():
            stmt = (
                update(ProductVariant)
                .where(ProductVariant.id == v.id, ProductVariant.version == v.version)
                .values(quantity=v.quantity, version=ProductVariant.version + 1)
                .execution_options(synchronize_session=False)
            )
            if db.execute(stmt).rowcount != 1:
                raise StockConflictError(f"La variante {v.id} cambió durante el descuento")
        db.commit()
    except Exception:
        db.rollback()
        raise

    # Los objetos cargados en la sesión ya no reflejan el stock nuevo
    db.expire_all()

    try:
        db.add_all([
            StockAdjustment(
                product_id=a.product_id,
                variant_id=a.variant_id,
                variant_index=a.variant_index,
                product_title=a.product_title,
                variant_name=a.variant_name,
                old_stock=a.old_stock,
                new_stock=a.new_stock,
                quantity_requested=a.requested,
                quantity_consumed=a.consumed,
                reference=reference,
            )
            for a in result.adjustments
        ])
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"⚠️ No se pudo guardar el historial de stock ({reference}): {e}")


# -----------------------------
# 3. Flujo completo: leer -> conciliar -> escribir
# -----------------------------
STOCK_WRITE_POLICY = RetryPolicy(
    max_attempts=3,
    base_delay=0.05,
    retry_on=(StockConflictError,),
    name="descuento de stock",
)


def apply_stock_items(
    db: Session,
    items: List[StockItem],
    reference: Optional[str] = None,
    policy: Optional[RetryPolicy] = None,
) -> ReconcileResult:
    """Descuenta los items del inventario. Ante conflicto vuelve a leer y reintenta."""
    policy = policy or STOCK_WRITE_POLICY

    def attempt() -> ReconcileResult:
        snapshot = load_snapshot(db, [item.product_id for item in items])
        result = reconcile(snapshot, items)
        persist_reconciliation(db, result, reference)
        return result

    result = policy.run(attempt)
    for a in result.adjustments:
        logger.info(
            f"📦 {a.product_title} / {a.variant_name}: {a.old_stock} -> {a.new_stock}"
            f" (pedido {a.requested})"
        )
    if result.skipped:
        logger.warning(f"⚠️ {len(result.skipped)} items sin cambio de stock ({reference})")
    return result


def list_adjustments(db: Session, limit: int = 100, product_id: Optional[int] = None):
    query = db.query(StockAdjustment)
    if product_id is not None:
        query = query.filter(StockAdjustment.product_id == product_id)
    return query.order_by(StockAdjustment.id.desc()).limit(limit).all()
