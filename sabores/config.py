import logging
import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """
    Configuración leída del entorno (.env incluido).
    Se construye una sola vez al arrancar; ver get_settings().
    """

    def __init__(self):
        db_url = os.getenv("DATABASE_URL", "").strip()
        # Algunos hostings entregan la URL con el esquema viejo de Heroku
        if db_url.startswith("postgres://"):
            db_url = db_url.replace("postgres://", "postgresql://", 1)
        self.database_url = db_url

        self.admin_token = os.getenv("ADMIN_TOKEN", "authenticated_admin_token")
        self.admin_username = os.getenv("ADMIN_USERNAME", "admin")
        self.admin_password = os.getenv("ADMIN_PASSWORD", "admin123")

        # Pasarela PIX
        self.pix_client_id = os.getenv("PIX_CLIENT_ID", "")
        self.pix_client_secret = os.getenv("PIX_CLIENT_SECRET", "")
        self.pix_base_url = os.getenv("PIX_BASE_URL", "https://pix.api.efipay.com.br").rstrip("/")
        self.pix_key = os.getenv("PIX_KEY", "")
        self.pix_cert_path = os.getenv("PIX_CERT_PATH", "")
        self.pix_verify_ssl = _env_bool("PIX_VERIFY_SSL", True)
        self.pix_timeout = float(os.getenv("PIX_TIMEOUT", "30"))
        self.pix_charge_expiration = int(os.getenv("PIX_CHARGE_EXPIRATION", "3600"))

        self.cache_ttl_seconds = float(os.getenv("CACHE_TTL_SECONDS", "120"))
        self.enable_debug_routes = _env_bool("ENABLE_DEBUG_ROUTES", False)
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.port = int(os.getenv("PORT", "3000"))

    @property
    def pix_configured(self) -> bool:
        return bool(self.pix_client_id and self.pix_client_secret)


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    if not settings.database_url:
        logger.error("❌ La variable de entorno DATABASE_URL es obligatoria")
        raise SystemExit(1)
    return settings
