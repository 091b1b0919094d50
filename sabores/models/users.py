from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func

from sabores.database import Base


class AdminCredential(Base):
    __tablename__ = "admin_credentials"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)

    password_hash = Column(String, nullable=True)

    # --- Columnas heredadas ---
    # Filas migradas del sistema anterior: texto plano + copia ofuscada.
    # Se vacían en el primer login correcto (ver security.verify_admin_password).
    password = Column(String, nullable=True)
    encrypted_password = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def is_legacy(self) -> bool:
        return self.password_hash is None
