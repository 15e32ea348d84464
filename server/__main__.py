"""
FastAPI Server Main Entry Point

Run this module to start the FastAPI server:
    python -m server

Or with uvicorn:
    uvicorn src.app:app --reload --port 8000
"""
import logging

import uvicorn
from dotenv import load_dotenv

from core.config import Settings


def load_env() -> None:
    """Load environment variables from .env file."""
    load_dotenv()


if __name__ == '__main__':
    load_env()
    settings = Settings.from_env()
    uvicorn.run(
        "src.app:app",  # module path
        host=settings.server_host,
        port=settings.server_port,
        reload=True,
        log_level=logging.getLevelName(settings.log_level).lower(),
    )
