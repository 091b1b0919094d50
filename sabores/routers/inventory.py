# sabores/routers/inventory.py
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sabores.crud.inventory import list_adjustments
from sabores.database import get_db
from sabores.schemas.inventory import AdjustmentRead
from sabores.security import require_admin

router = APIRouter()


@router.get("/adjustments", response_model=List[AdjustmentRead])
def get_adjustments(
    product_id: Optional[int] = None,
    limit: int = 100,
    db: Session = Depends(get_db),
    _token: str = Depends(require_admin),
):
    """Historial de descuentos de stock, más recientes primero"""
    return list_adjustments(db, limit=limit, product_id=product_id)
