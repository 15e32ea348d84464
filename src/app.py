"""Preferred ASGI entrypoint.

Use with:
- `uvicorn src.app:app --reload --port 8000`

The `python -m server` launcher also points here.
"""

from dotenv import load_dotenv

from core.config import Settings
from server.app import CodebaseMemoryServer

load_dotenv()
settings = Settings.from_env()
server = CodebaseMemoryServer(settings=settings, log_level=settings.log_level)
app = server.create_app()
