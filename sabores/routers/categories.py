import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sabores.crud.products import delete_category, list_categories, replace_categories, upsert_category
from sabores.database import get_db
from sabores.models import Category
from sabores.schemas.products import CategoriesSave, CategoryAdd, CategoryList
from sabores.security import require_admin
from sabores.utils.normalize import normalize_categories

logger = logging.getLogger(__name__)

router = APIRouter()


# Sin caché: las categorías siempre salen de la BD
@router.get("", response_model=CategoryList)
def read_categories(db: Session = Depends(get_db)):
    try:
        categories = list_categories(db)
    except SQLAlchemyError as e:
        logger.error(f"❌ Error al buscar categorías: {e}")
        return {"categories": []}
    logger.info(f"✅ {len(categories)} categorías cargadas")
    return {"categories": categories}


@router.post("")
def save_categories(
    data: CategoriesSave,
    db: Session = Depends(get_db),
    _token: str = Depends(require_admin),
):
    normalized = normalize_categories(data.categories)
    if not normalized:
        raise HTTPException(status_code=400, detail="Nenhuma categoria fornecida")

    logger.info(f"💾 Guardando {len(normalized)} categorías...")
    try:
        saved = replace_categories(db, normalized)
    except SQLAlchemyError as e:
        logger.error(f"❌ Error al guardar categorías: {e}")
        raise HTTPException(status_code=500, detail=f"Erro ao salvar categorias: {e}")
    return {"success": True, "message": f"{saved} categorias salvas"}


@router.post("/add")
def add_category(
    data: CategoryAdd,
    db: Session = Depends(get_db),
    _token: str = Depends(require_admin),
):
    category = data.category
    if not category or not category.get("id") or not category.get("name"):
        raise HTTPException(status_code=400, detail="Dados da categoria inválidos")

    payload = {
        "id": str(category["id"]),
        "name": category["name"],
        "description": category.get("description"),
    }
    logger.info(f"➕ Agregando categoría: {payload['name']} (ID: {payload['id']})")
    try:
        upsert_category(db, payload)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Error al agregar categoría: {e}")
        raise HTTPException(status_code=500, detail=f"Erro ao adicionar categoria: {e}")
    return {"success": True, "message": f'Categoria "{payload["name"]}" adicionada'}


@router.delete("/{category_id}")
def remove_category(
    category_id: str,
    db: Session = Depends(get_db),
    _token: str = Depends(require_admin),
):
    category = db.query(Category).filter(Category.id == category_id).first()
    if not category:
        raise HTTPException(status_code=404, detail="Categoria não encontrada")

    name = category.name
    try:
        delete_category(db, category)
    except SQLAlchemyError as e:
        logger.error(f"❌ Error al eliminar categoría: {e}")
        raise HTTPException(status_code=500, detail=f"Erro ao excluir categoria: {e}")
    logger.info(f"🗑️ Categoría eliminada: {category_id}")
    return {"success": True, "message": f'Categoria "{name}" excluída'}
