import logging
import os
import time
from contextlib import contextmanager
from typing import Iterator, Optional

logger = logging.getLogger("redline.timing")

_configured = False


def setup_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once per process. Level defaults to $LOG_LEVEL."""
    global _configured
    if _configured:
        return
    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _configured = True


@contextmanager
def timed(label: str) -> Iterator[None]:
    t0 = time.time()
    try:
        yield
    finally:
        dt = int((time.time() - t0) * 1000)
        logger.info("[timed] %s: %d ms", label, dt)
