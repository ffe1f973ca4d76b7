import logging
import sys
from typing import Iterable

NOISY_LOGGERS = ("uvicorn.access", "httpx", "asyncio")


def setup_logging(level: str = "INFO", quiet: Iterable[str] = NOISY_LOGGERS) -> None:
    """
    Configure planner logging.

    Engine modules log through ``logging.getLogger(__name__)`` and inherit
    the level set here. Chatty third-party loggers are held at WARNING so
    per-month engine traces stay readable at DEBUG.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)
