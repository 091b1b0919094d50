import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level_name: str = "INFO") -> None:
    """Configura el logging de consola (legible para humanos) una sola vez."""
    level = getattr(logging, str(level_name).upper(), logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    else:
        root.setLevel(level)
    # httpx registra cada request en INFO; demasiado ruido para la consola
    logging.getLogger("httpx").setLevel(logging.WARNING)
