import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from sabores.config import get_settings
from sabores.crud.users import get_credential_by_username
from sabores.database import get_db
from sabores.schemas.auth import LoginRequest, LoginResponse, VerifyResponse
from sabores.security import bearer_scheme, check_token, verify_admin_password

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    if not data.username or not data.password:
        raise HTTPException(status_code=400, detail="Usuário e senha são obrigatórios")

    logger.info(f"🔐 Tentativa de login: {data.username}")

    # 1. Buscar credencial
    credential = get_credential_by_username(db, data.username)
    if not credential:
        logger.info(f"❌ Credencial no encontrada para: {data.username}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Credenciais inválidas")

    # 2. Verificar contraseña (hash o formato heredado)
    if not verify_admin_password(db, credential, data.password):
        logger.info(f"❌ Contraseña incorrecta para: {data.username}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Credenciais inválidas")

    logger.info(f"✅ Login correcto para: {data.username}")
    return {
        "success": True,
        "token": get_settings().admin_token,
        "user": {"username": credential.username},
    }


@router.get("/verify", response_model=VerifyResponse)
def verify(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)):
    token = credentials.credentials if credentials else None
    if check_token(token):
        return {"valid": True, "user": {"username": get_settings().admin_username}}
    return {"valid": False}
