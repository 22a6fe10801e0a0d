import logging
import sys

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(log_level="INFO"):
    """
    Configures logging for the engine. Safe to call more than once.
    """
    root = logging.getLogger()
    root.setLevel(log_level)

    for existing in root.handlers:
        if getattr(existing, "_engine_handler", False):
            existing.setLevel(log_level)
            return

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler._engine_handler = True  # type: ignore[attr-defined]

    formatter = logging.Formatter(LOG_FORMAT)
    handler.setFormatter(formatter)

    root.addHandler(handler)
