import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Install a single stream handler on the root logger.
    Calling it again only adjusts the level.
    """
    root = logging.getLogger()
    if not any(getattr(h, "_tailorbook", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._tailorbook = True
        root.addHandler(handler)
    root.setLevel(level.upper())
