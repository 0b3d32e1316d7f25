"""
CreditGuard Configuration

Central settings loaded from environment variables.
"""

import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Immutable application settings."""

    # --- Core Versioning ---
    CORE_VERSION: str = "1.0.0"

    # --- Guardrails ---
    DEFAULT_DEPTH: str = os.getenv("CREDITGUARD_DEFAULT_DEPTH", "beginner")
    MAX_URL_LENGTH: int = int(os.getenv("CREDITGUARD_MAX_URL_LENGTH", "2048"))
    MAX_QUESTION_LENGTH: int = int(
        os.getenv("CREDITGUARD_MAX_QUESTION_LENGTH", "4000")
    )

    # --- Server ---
    HOST: str = os.getenv("CREDITGUARD_HOST", "0.0.0.0")
    PORT: int = int(os.getenv("CREDITGUARD_PORT", "8000"))

    # --- CORS ---
    CORS_ORIGINS: str = os.getenv("CREDITGUARD_CORS_ORIGINS", "*")


settings = Settings()
