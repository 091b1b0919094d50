import logging

from sqlalchemy.orm import Session

from sabores.models import AdminCredential
from sabores.security import get_password_hash

logger = logging.getLogger(__name__)


def get_credential_by_username(db: Session, username: str):
    """Busca la credencial de administrador por su username."""
    return db.query(AdminCredential).filter(AdminCredential.username == username).first()


def ensure_admin_credentials(db: Session, username: str, password: str) -> AdminCredential:
    """Crea la credencial del admin al arrancar si todavía no existe."""
    logger.info("🔐 Verificando credenciales admin...")
    existing = get_credential_by_username(db, username)
    if existing:
        state = "heredada (sin hash)" if existing.is_legacy else "con hash"
        logger.info(f"✅ Credenciales admin ya existen: '{existing.username}' ({state})")
        return existing

    credential = AdminCredential(
        username=username,
        password_hash=get_password_hash(password),
    )
    db.add(credential)
    db.commit()
    db.refresh(credential)
    logger.info(f"✅ Credenciales admin creadas para '{username}'")
    return credential
