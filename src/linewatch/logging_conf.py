import logging
import sys

# third-party loggers that are chatty at INFO while the NiceGUI server runs
NOISY_LOGGERS = ("uvicorn.access", "watchfiles", "nicegui", "engineio", "socketio")


def configure_logging(level: str = "INFO") -> int:
    """Send app logs to stdout at ``level`` and cap server noise at WARNING.

    Returns the numeric level applied. Unknown names fall back to INFO.
    """
    numeric_level = getattr(logging, str(level).strip().upper(), None)
    if not isinstance(numeric_level, int):
        print(f"Nivel de log inválido: {level}, se usa INFO")
        numeric_level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)

    # DEBUG opens up the app loggers only; server libraries stay quiet
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))
    logging.getLogger("linewatch").setLevel(numeric_level)
    return numeric_level
