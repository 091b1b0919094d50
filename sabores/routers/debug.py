"""
Endpoints de depuración. Solo se montan con ENABLE_DEBUG_ROUTES=true
y no piden token, así que no deben quedar activos en producción.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sabores.crud.products import list_categories
from sabores.database import get_db
from sabores.models import AdminCredential
from sabores.utils.cipher import deobfuscate, obfuscate

router = APIRouter()


@router.get("/categories")
def debug_categories(db: Session = Depends(get_db)):
    try:
        categories = list_categories(db)
    except SQLAlchemyError as e:
        return {"categories": [], "count": 0, "error": str(e)}
    return {"categories": categories, "count": len(categories)}


@router.get("/credentials")
def debug_credentials(db: Session = Depends(get_db)):
    # Nunca se exponen hashes ni contraseñas, solo el estado de cada fila
    try:
        rows = db.query(AdminCredential).all()
    except SQLAlchemyError as e:
        return {"credentials": [], "count": 0, "error": str(e)}
    credentials = [
        {
            "id": c.id,
            "username": c.username,
            "hashed": not c.is_legacy,
            "created_at": c.created_at,
        }
        for c in rows
    ]
    return {"credentials": credentials, "count": len(credentials)}


@router.get("/encrypt/{text}")
def debug_encrypt(text: str):
    encrypted = obfuscate(text)
    return {"original": text, "encrypted": encrypted, "decrypted": deobfuscate(encrypted)}
