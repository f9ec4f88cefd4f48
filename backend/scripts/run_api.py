"""Run the API with uvicorn.

Usage:
  JWT_SECRET=... python scripts/run_api.py

The app is built once before serving; a missing JWT_SECRET or an
unreachable database ends the process with exit code 1.
"""

import logging
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

import uvicorn

from service_shop.main import create_app

logger = logging.getLogger("service_shop.run")


def main() -> None:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    try:
        app = create_app()
    except Exception:
        logger.exception("startup failed")
        sys.exit(1)
    host = os.environ.get("API_HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", os.environ.get("API_PORT", "5000")))
    uvicorn.run(app, host=host, port=port, reload=False)


if __name__ == "__main__":
    main()
