from __future__ import annotations

import logging

from kanban_api.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger("kanban_api")


def configure_logging(level: str | None = None) -> None:
  lvl = (level or settings.log_level or "INFO").upper()
  if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
  logger.setLevel(lvl)
  logger.propagate = False
