"""Run the competition API server. Run from project root: python web/run_api.py"""
import logging
import sys
from pathlib import Path

# Add project root to path so engine imports work
_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_root))

import uvicorn

import config

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger("bracketdesk")


def main() -> None:
    """Run the API."""
    logger.info("Starting API on %s:%d", config.API_HOST, config.API_PORT)
    uvicorn.run(
        "web.api.main:app",
        host=config.API_HOST,
        port=config.API_PORT,
        reload=False,
    )


if __name__ == "__main__":
    main()
