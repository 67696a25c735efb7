"""Workflow configuration constants: single source of truth for infrastructure env vars."""

import os
from pathlib import Path

# Server binding: used by entrypoint / uvicorn
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))

# Logging: directory for per-component log files
LOG_DIR = Path(os.getenv("LOG_DIR", str(Path(__file__).parent.parent / "logs")))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# CORS: comma-separated list of allowed origins for the HTTP surface
CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if o.strip()
]

# Database: async SQLAlchemy URL for the HTTP surface (SQLite by default)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./workflow.db")
DB_ECHO = os.getenv("DB_ECHO", "false").lower() == "true"
