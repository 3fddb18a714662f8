"""Logger lookup for Pitch Coach modules."""
import logging
from typing import Dict

PACKAGE_LOGGER = "pitch_coach"

_logger_cache: Dict[str, logging.Logger] = {}


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module, usually called with ``__name__``.

    Modules run as scripts report ``__main__``; those are filed under the
    package logger so the levels in logging_config still apply to them.
    """
    if name == "__main__":
        name = f"{PACKAGE_LOGGER}.main"
    logger = _logger_cache.get(name)
    if logger is None:
        logger = _logger_cache[name] = logging.getLogger(name)
    return logger
