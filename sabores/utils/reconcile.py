"""
Conciliación de stock de un pedido contra una foto (snapshot) del inventario.

Todo es en memoria: no hay llamadas a BD aquí. La carga de la foto y la
escritura de los cambios viven en sabores/crud/inventory.py.
"""
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional


@dataclass(frozen=True)
class StockItem:
    product_id: int
    quantity: int
    variant_id: Optional[str] = None
    variant_index: Optional[int] = None


@dataclass
class VariantSnapshot:
    id: str
    position: int
    name: str
    quantity: int
    version: int = 1


@dataclass
class ProductSnapshot:
    id: int
    title: str
    variants: List[VariantSnapshot] = field(default_factory=list)

    def find_variant(self, variant_id: Optional[str], variant_index: Optional[int]):
        """Devuelve (índice, variante) o (None, None). El id estable tiene prioridad sobre el índice."""
        if variant_id is not None:
            for idx, v in enumerate(self.variants):
                if v.id == variant_id:
                    return idx, v
            return None, None
        if variant_index is not None and 0 <= variant_index < len(self.variants):
            return variant_index, self.variants[variant_index]
        return None, None


@dataclass(frozen=True)
class Adjustment:
    product_id: int
    product_title: str
    variant_id: str
    variant_index: int
    variant_name: str
    old_stock: int
    new_stock: int
    requested: int

    @property
    def consumed(self) -> int:
        return self.old_stock - self.new_stock


@dataclass
class ReconcileResult:
    products: List[ProductSnapshot] = field(default_factory=list)
    adjustments: List[Adjustment] = field(default_factory=list)
    skipped: List[StockItem] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.adjustments)

    def changed_variants(self) -> List[VariantSnapshot]:
        """Variantes tocadas (valor final), una sola vez cada una."""
        touched = {(a.product_id, a.variant_id) for a in self.adjustments}
        return [
            v
            for p in self.products
            for v in p.variants
            if (p.id, v.id) in touched
        ]


def _copy_product(p: ProductSnapshot) -> ProductSnapshot:
    return ProductSnapshot(id=p.id, title=p.title, variants=[replace(v) for v in p.variants])


def reconcile(snapshot: Dict[int, ProductSnapshot], items: Iterable[StockItem]) -> ReconcileResult:
    """
    Descuenta cada item de la foto: new = max(0, old - pedido).

    - Producto o variante inexistente: se omite, sin registro.
    - Sin cambio (stock ya en 0): se omite, sin registro.
    - Pedir más de lo disponible deja el stock en 0 sin error.
    - Varios items sobre la misma variante se acumulan.

    La foto original no se modifica; los productos devueltos son copias.
    """
    result = ReconcileResult()
    working: Dict[int, ProductSnapshot] = {}

    for item in items:
        if item.quantity is None or item.quantity <= 0:
            result.skipped.append(item)
            continue

        if item.product_id not in working:
            original = snapshot.get(item.product_id)
            if original is None:
                result.skipped.append(item)
                continue
            working[item.product_id] = _copy_product(original)
        product = working[item.product_id]

        idx, variant = product.find_variant(item.variant_id, item.variant_index)
        if variant is None:
            result.skipped.append(item)
            continue

        old = variant.quantity
        new = max(0, old - item.quantity)
        if new == old:
            result.skipped.append(item)
            continue

        variant.quantity = new
        result.adjustments.append(Adjustment(
            product_id=product.id,
            product_title=product.title,
            variant_id=variant.id,
            variant_index=idx,
            variant_name=variant.name,
            old_stock=old,
            new_stock=new,
            requested=item.quantity,
        ))

    touched_ids = {a.product_id for a in result.adjustments}
    result.products = [p for pid, p in working.items() if pid in touched_ids]
    return result
