import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List

from sqlalchemy.orm import Session, selectinload

from sabores.models import Category, Product, ProductVariant, new_variant_id
from sabores.utils.normalize import sort_variants_for_display

logger = logging.getLogger(__name__)


# -----------------------------
# Helpers
# -----------------------------
def _safe_decimal(val, default: Decimal = Decimal(0)) -> Decimal:
    try:
        if val is None or (isinstance(val, str) and not val.strip()):
            return default
        return Decimal(str(val))
    except (InvalidOperation, ValueError):
        return default


def _safe_int(val):
    try:
        return int(val)
    except (TypeError, ValueError):
        return None


def variant_to_dict(v: ProductVariant) -> Dict[str, Any]:
    return {
        "id": v.id,
        "index": v.position,
        "name": v.name,
        "image": v.image,
        "description": v.description,
        "quantity": v.quantity,
    }


def product_to_dict(p: Product) -> Dict[str, Any]:
    """
    ORM Product -> dict para la API.
    Los sabores salen ordenados para mostrar (con stock primero); "index"
    conserva la posición guardada que usan los clientes viejos.
    """
    return {
        "id": p.id,
        "title": p.title,
        "category": p.category,
        "price": float(p.price) if p.price is not None else 0.0,
        "description": p.description,
        "status": p.status,
        "display_order": p.display_order,
        "sabores": sort_variants_for_display([variant_to_dict(v) for v in p.variants]),
    }


# -----------------------------
# Productos
# -----------------------------
def list_products(db: Session) -> List[Dict[str, Any]]:
    products = (
        db.query(Product)
        .options(selectinload(Product.variants))
        .order_by(Product.display_order, Product.id)
        .all()
    )
    return [product_to_dict(p) for p in products]


def replace_all_products(db: Session, products: List[Dict[str, Any]]) -> int:
    """
    Reemplaza el catálogo completo: borra todo y vuelve a insertar.
    Recibe productos ya normalizados (ver utils/normalize.py).
    Conserva los ids que manda el cliente (producto y sabor) para que los
    pedidos pendientes sigan apuntando a lo mismo.
    """
    try:
        # La versión de cada sabor sigue creciendo aunque se reinserte: un
        # descuento que leyó el stock antes de este guardado debe chocar
        last_versions = dict(db.query(ProductVariant.id, ProductVariant.version).all())

        db.query(ProductVariant).delete(synchronize_session=False)
        db.query(Product).delete(synchronize_session=False)
        # Los objetos viejos no deben chocar con los nuevos que reutilizan ids
        db.expunge_all()

        given_ids = [_safe_int(p.get("id")) for p in products]
        next_id = max([i for i in given_ids if i] or [0]) + 1
        used_product_ids = set()
        used_variant_ids = set()

        for order, (data, product_id) in enumerate(zip(products, given_ids)):
            if not product_id or product_id in used_product_ids:
                product_id = next_id
                next_id += 1
            used_product_ids.add(product_id)

            display_order = _safe_int(data.get("display_order"))
            if display_order is None:
                display_order = order

            product = Product(
                id=product_id,
                title=data.get("title") or "Sem título",
                category=data.get("category"),
                price=_safe_decimal(data.get("price")),
                description=data.get("description"),
                status=data.get("status") or "active",
                display_order=display_order,
            )
            for position, sabor in enumerate(data.get("sabores") or []):
                variant_id = sabor.get("id")
                if not variant_id or variant_id in used_variant_ids:
                    variant_id = new_variant_id()
                used_variant_ids.add(variant_id)
                product.variants.append(ProductVariant(
                    id=variant_id,
                    position=position,
                    name=sabor["name"],
                    image=sabor.get("image"),
                    description=sabor.get("description"),
                    quantity=sabor.get("quantity", 0),
                    version=last_versions.get(variant_id, 0) + 1,
                ))
            db.add(product)

        db.commit()
    except Exception:
        db.rollback()
        raise
    return len(products)


# -----------------------------
# Categorías
# -----------------------------
def category_to_dict(c: Category) -> Dict[str, Any]:
    return {"id": c.id, "name": c.name, "description": c.description}


def list_categories(db: Session) -> List[Dict[str, Any]]:
    return [category_to_dict(c) for c in db.query(Category).order_by(Category.name).all()]


def upsert_category(db: Session, data: Dict[str, Any]) -> Category:
    category = db.query(Category).filter(Category.id == data["id"]).first()
    if category is None:
        category = Category(id=data["id"])
        db.add(category)
    category.name = data["name"]
    category.description = data.get("description") or f"Categoria de {data['name']}"
    return category


def replace_categories(db: Session, categories: List[Dict[str, Any]]) -> int:
    """Borra las categorías que no vienen en la lista y hace upsert del resto."""
    ids = [c["id"] for c in categories]
    try:
        db.query(Category).filter(Category.id.notin_(ids)).delete(synchronize_session=False)
        for data in categories:
            upsert_category(db, data)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return len(categories)


def delete_category(db: Session, category: Category) -> int:
    """
    Elimina una categoría sin dejar productos huérfanos: los mueve a otra
    categoría existente. Si no queda ninguna, los productos se quedan igual.
    Devuelve cuántos productos se movieron.
    """
    moved = 0
    try:
        in_category = db.query(Product).filter(Product.category == category.id).count()
        if in_category:
            other = (
                db.query(Category)
                .filter(Category.id != category.id)
                .order_by(Category.name)
                .first()
            )
            if other is not None:
                moved = (
                    db.query(Product)
                    .filter(Product.category == category.id)
                    .update({Product.category: other.id}, synchronize_session=False)
                )
                logger.info(f"✅ {moved} productos movidos a la categoría: {other.id}")
            else:
                logger.warning("⚠️ No hay otra categoría, los productos no se movieron")

        db.delete(category)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return moved
