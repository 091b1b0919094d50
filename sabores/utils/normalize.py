"""
Normalización del catálogo que llega del panel de administración.

Acepta los formatos viejos del frontend:
- categorías como string ("doces") u objeto incompleto
- productos con colors[].sizes[].stock en lugar de sabores[]
"""
from typing import Any, Dict, List, Optional

PLACEHOLDER_IMAGE = "https://via.placeholder.com/400x300"
DEFAULT_VARIANT_NAME = "Sem nome"


def _capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


def _to_stock(value: Any) -> int:
    """Convierte a entero no negativo; basura o None cuentan como 0."""
    try:
        qty = int(float(value))
    except (TypeError, ValueError):
        return 0
    return max(0, qty)


def normalize_category(cat: Any) -> Optional[Dict[str, str]]:
    if isinstance(cat, str):
        if not cat.strip():
            return None
        return {
            "id": cat,
            "name": _capitalize(cat),
            "description": f"Categoria de {cat}",
        }
    if isinstance(cat, dict) and cat.get("id"):
        cat_id = str(cat["id"])
        name = cat.get("name") or _capitalize(cat_id)
        return {
            "id": cat_id,
            "name": name,
            "description": cat.get("description") or f"Categoria de {cat.get('name') or cat_id}",
        }
    return None


def normalize_categories(categories: Any) -> List[Dict[str, str]]:
    if not isinstance(categories, list):
        return []
    return [c for c in (normalize_category(cat) for cat in categories) if c is not None]


def normalize_variant(raw: Dict[str, Any]) -> Dict[str, Any]:
    variant = {
        "name": raw.get("name") or DEFAULT_VARIANT_NAME,
        "image": raw.get("image") or PLACEHOLDER_IMAGE,
        "description": raw.get("description") or None,
        "quantity": _to_stock(raw.get("quantity")),
    }
    if raw.get("id"):
        variant["id"] = str(raw["id"])
    return variant


def normalize_product(product: Dict[str, Any]) -> Dict[str, Any]:
    normalized = dict(product)

    # Estructura vieja (colores con tallas) -> sabores con cantidad sumada
    colors = product.get("colors")
    if isinstance(colors, list):
        sabores = []
        for color in colors:
            color = color or {}
            sizes = color.get("sizes")
            if isinstance(sizes, list):
                qty = sum(_to_stock((size or {}).get("stock")) for size in sizes)
            else:
                qty = _to_stock(color.get("quantity"))
            sabores.append(normalize_variant({
                "id": color.get("id"),
                "name": color.get("name"),
                "image": color.get("image"),
                "description": color.get("description"),
                "quantity": qty,
            }))
        normalized.pop("colors", None)
        normalized["sabores"] = sabores
        return normalized

    sabores = product.get("sabores")
    if sabores is None:
        sabores = product.get("variants")
    if isinstance(sabores, list):
        normalized.pop("variants", None)
        normalized["sabores"] = [normalize_variant(s or {}) for s in sabores]
    else:
        normalized["sabores"] = []
    return normalized


def normalize_products(products: Any) -> List[Dict[str, Any]]:
    if not isinstance(products, list):
        return []
    return [normalize_product(p) for p in products if isinstance(p, dict)]


def sort_variants_for_display(variants: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Sabores con stock primero, agotados al final. Orden estable dentro de cada grupo."""
    return sorted(variants, key=lambda v: _to_stock(v.get("quantity")) <= 0)
