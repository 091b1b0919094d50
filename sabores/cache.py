import logging
import time
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class ProductCache:
    """
    Caché en memoria de UN solo valor (la lista de productos) con TTL.

    Vive en app.state y se inyecta con Depends(get_product_cache).
    Refrescar es reemplazar todo el valor, así que dos requests que
    refresquen a la vez solo duplican la consulta.
    """

    def __init__(self, ttl_seconds: float = 120, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._value: Optional[Any] = None
        self._expires_at: float = 0.0

    def get(self) -> Optional[Any]:
        """Valor vigente o None si está vacío/vencido."""
        if self._value is None:
            return None
        if self._clock() >= self._expires_at:
            return None
        return self._value

    def set(self, value: Any) -> None:
        self._value = value
        self._expires_at = self._clock() + self.ttl_seconds

    def invalidate(self) -> None:
        self._value = None
        self._expires_at = 0.0
        logger.info("🔄 Caché de productos limpiada")

    @property
    def is_fresh(self) -> bool:
        return self.get() is not None
