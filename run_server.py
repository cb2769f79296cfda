"""Entry point for running the civic reports API with Uvicorn."""
from __future__ import annotations

import logging
import os

import uvicorn

from civic_api.config import get_settings


def main() -> None:
  settings = get_settings()
  logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
  )
  port = int(os.getenv("PORT", "4000"))
  reload = os.getenv("UVICORN_RELOAD", "false").lower() == "true"
  uvicorn.run("civic_api.main:app", host="0.0.0.0", port=port, reload=reload, log_config=None)


if __name__ == "__main__":
  main()
