"""Serve the exporter's /metrics and /health endpoints.

Usage:
    uv run python -m scripts.serve
"""

import logging

import uvicorn

from src.config import get_settings


def main() -> None:
    """Configure logging and run the FastAPI app under uvicorn."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "src.api.main:app",
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
