"""
Runtime configuration for notra.

Values come from the environment (optionally a .env file at the project root).
"""

import os
from pathlib import Path
from dotenv import load_dotenv

project_root = Path(__file__).resolve().parent.parent
load_dotenv(project_root / ".env")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite:///{project_root / 'notra.db'}"
)
DB_ECHO = os.getenv("DB_ECHO", "false").lower() == "true"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY")

SUPERMEMORY_API_URL = os.getenv("SUPERMEMORY_API_URL", "https://api.supermemory.ai/v3")

GITHUB_API_URL = os.getenv("GITHUB_API_URL", "https://api.github.com")
GITHUB_API_VERSION = "2022-11-28"

SKILLS_DIR = Path(os.getenv("NOTRA_SKILLS_DIR", str(Path(__file__).resolve().parent / "skills")))


def get_supermemory_api_key() -> str | None:
    """Read lazily so tests can toggle memory with monkeypatch.setenv."""
    return os.getenv("SUPERMEMORY_API_KEY")


def get_github_fallback_token() -> str | None:
    return os.getenv("GITHUB_TOKEN")


def get_app_url() -> str:
    return os.getenv("APP_URL", "http://localhost:8000").rstrip("/")


def get_integration_encryption_key() -> str | None:
    """Fernet key (urlsafe base64, 32 bytes) used to encrypt stored integration tokens."""
    return os.getenv("INTEGRATION_ENCRYPTION_KEY")
