# shopcore/utils/logging.py
import logging
import sys

from shopcore.utils.settings import LOG_LEVEL

_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
_configured = False


def _configure_root() -> None:
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))

    root = logging.getLogger("shopcore")
    root.setLevel(LOG_LEVEL.upper())
    # nie dubluj handlerow przy reloadzie uvicorna
    if not root.handlers:
        root.addHandler(handler)
    root.propagate = False

    _configured = True


def get_logger(name: str) -> logging.Logger:
    _configure_root()
    if not name.startswith("shopcore"):
        name = f"shopcore.{name}"
    return logging.getLogger(name)
