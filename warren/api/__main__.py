"""
warren.api.__main__ — Entry point for ``python -m warren.api``
==============================================================

Serves :data:`warren.api.main.app` with uvicorn on the ``dashboard_port``
from ``config.yaml``.
"""

from __future__ import annotations

import logging
import os

import uvicorn
from dotenv import load_dotenv

from warren.config import load_config

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("warren")


def main() -> None:
    load_dotenv()
    cfg = load_config(os.getenv("WARREN_CONFIG", "config.yaml"))
    host = os.getenv("DASHBOARD_HOST", "127.0.0.1")
    logger.info("Starting dashboard API on %s:%d", host, cfg.dashboard_port)
    uvicorn.run("warren.api.main:app", host=host, port=cfg.dashboard_port, log_config=None)


if __name__ == "__main__":
    main()
