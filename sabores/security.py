import hmac
import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from sabores.config import get_settings
from sabores.models import AdminCredential
from sabores.utils.cipher import obfuscate

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


def get_password_hash(password: str) -> str:
    """Genera el hash seguro (bcrypt, con sal) de la contraseña."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def _same(a: Optional[str], b: Optional[str]) -> bool:
    if a is None or b is None:
        return False
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def verify_admin_password(db: Session, credential: AdminCredential, password: str) -> bool:
    """
    Verifica la contraseña del admin.

    Filas con hash: bcrypt. Filas heredadas (sin hash): se acepta la
    contraseña en texto plano guardada o su forma ofuscada; si coincide,
    la fila se migra al hash y se borran las columnas viejas.
    """
    if not credential.is_legacy:
        return verify_password(password, credential.password_hash)

    valid = _same(password, credential.password) or _same(obfuscate(password), credential.encrypted_password)
    if valid:
        credential.password_hash = get_password_hash(password)
        credential.password = None
        credential.encrypted_password = None
        db.commit()
        logger.info(f"🔐 Credencial heredada de '{credential.username}' migrada a hash")
    return valid


def check_token(token: Optional[str]) -> bool:
    if not token:
        return False
    return _same(token, get_settings().admin_token)


def require_admin(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> str:
    """Dependencia: exige el bearer token estático del panel."""
    token = credentials.credentials if credentials else None
    if not check_token(token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Não autorizado",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token
