import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

logger = logging.getLogger(__name__)


class RetryPolicy:
    """
    Reintentos con espera lineal: antes del intento N+1 se espera base_delay * N.

    Uso:
        policy = RetryPolicy(max_attempts=3, base_delay=1.0, retry_on=(PixGatewayError,))
        token = await policy.run_async(fetch_token)
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
        should_retry: Optional[Callable[[BaseException], bool]] = None,
        name: str = "operación",
        sleep: Optional[Callable[[float], Any]] = None,
        async_sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts debe ser >= 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.retry_on = retry_on
        # Filtro extra sobre retry_on: p.ej. no reintentar un 400
        self.should_retry = should_retry
        self.name = name
        self._sleep = sleep or time.sleep
        self._async_sleep = async_sleep or asyncio.sleep

    def delay_for(self, attempt: int) -> float:
        return self.base_delay * attempt

    def _gives_up(self, attempt: int, exc: BaseException) -> bool:
        if self.should_retry is not None and not self.should_retry(exc):
            logger.error(f"Error no recuperable en {self.name}: {exc}")
            return True
        self._log_failure(attempt, exc)
        return attempt == self.max_attempts

    def _log_failure(self, attempt: int, exc: BaseException) -> None:
        if attempt < self.max_attempts:
            logger.warning(f"Intento {attempt}/{self.max_attempts} fallido en {self.name}: {exc}")
        else:
            logger.error(f"Todos los intentos fallidos en {self.name}: {exc}")

    def run(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        for attempt in range(1, self.max_attempts + 1):
            try:
                return func(*args, **kwargs)
            except self.retry_on as e:
                if self._gives_up(attempt, e):
                    raise
                delay = self.delay_for(attempt)
                if delay > 0:
                    self._sleep(delay)

    async def run_async(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await func(*args, **kwargs)
            except self.retry_on as e:
                if self._gives_up(attempt, e):
                    raise
                delay = self.delay_for(attempt)
                if delay > 0:
                    await self._async_sleep(delay)
