from sabores.config import get_settings
from sabores.crud.products import upsert_category
from sabores.crud.users import ensure_admin_credentials
from sabores.database import SessionLocal, engine
from sabores.logging_config import setup_logging
# Importamos TODO desde sabores.models para registrar las tablas
from sabores.models import Base, Category

DEFAULT_CATEGORIES = [
    {"id": "doces", "name": "Doces", "description": "Categoria de doces"},
    {"id": "salgados", "name": "Salgados", "description": "Categoria de salgados"},
    {"id": "bebidas", "name": "Bebidas", "description": "Categoria de bebidas"},
]


def init_db():
    settings = get_settings()
    setup_logging(settings.log_level)

    print("--- Creando Tablas ---")
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        print("--- Iniciando Poblado ---")

        # 1. ADMIN
        ensure_admin_credentials(db, settings.admin_username, settings.admin_password)

        # 2. CATEGORÍAS (solo si la tabla está vacía)
        if db.query(Category).count() == 0:
            for cat in DEFAULT_CATEGORIES:
                upsert_category(db, cat)
            db.commit()
            print(f"✅ {len(DEFAULT_CATEGORIES)} categorías creadas.")
        else:
            print("ℹ️ Ya existen categorías, no se tocan.")
    finally:
        db.close()


if __name__ == "__main__":
    init_db()
