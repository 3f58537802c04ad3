import logging

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with a single stream handler attached.

    Args:
        name: Logger name (usually module name)

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    return logger


def configure_logging(level: str = "INFO") -> None:
    """
    Configure root logging for the service process.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ...)
    """
    level = level.upper()
    logging.basicConfig(level=level, format=_FORMAT)
    logging.getLogger().setLevel(level)
    # get_logger() loggers do not propagate, so they are set one by one
    for name in list(logging.root.manager.loggerDict):
        if name.split(".")[0] in ("orchestration", "core", "apps"):
            logging.getLogger(name).setLevel(level)
