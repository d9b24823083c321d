from __future__ import annotations

import logging

from tablequery.config import settings


def _build_logger(name: str = "tablequery") -> logging.Logger:
    log = logging.getLogger(name)
    if not log.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
        log.addHandler(handler)
    log.setLevel(settings.log_level.upper())
    return log


logger = _build_logger()
