"""
FitMind configuration.
Values come from the environment, with a local .env file loaded first.
"""

import os
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


class Config:
    """Runtime settings. Instances can override any attribute for tests."""

    DATA_FILE = os.getenv("DATA_FILE", "journal_data.json")

    # AI delegate
    GROQ_API_KEY = os.getenv("GROQ_API_KEY")
    GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.1-8b-instant")
    AI_TIMEOUT_SECONDS = float(os.getenv("AI_TIMEOUT_SECONDS", "15"))
    USE_MOCK_AI = _env_flag("USE_MOCK_AI")

    # Outbound email
    EMAIL_HOST = os.getenv("EMAIL_HOST", "smtp.gmail.com")
    EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
    EMAIL_USER = os.getenv("EMAIL_USER")
    EMAIL_PASS = os.getenv("EMAIL_PASS")
    EMAIL_FROM = os.getenv("EMAIL_FROM", "FitMind <no-reply@fitmind.app>")

    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")
    CORS_ORIGINS = _env_list(
        "CORS_ORIGINS",
        "http://localhost:5173,http://localhost:5174,http://localhost:5175",
    )

    def __init__(self, overrides: Optional[Dict[str, Any]] = None):
        for key, value in (overrides or {}).items():
            setattr(self, key, value)

    def ai_enabled(self) -> bool:
        """The delegate is used only with a key and mock mode off."""
        return bool(self.GROQ_API_KEY) and not self.USE_MOCK_AI

    def email_enabled(self) -> bool:
        return bool(self.EMAIL_USER and self.EMAIL_PASS)
