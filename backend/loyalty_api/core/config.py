"""
Configuración centralizada de la aplicación

Values come from the environment or a .env file next to the backend.
Business settings that staff can change at runtime (currency, points rates,
chat toggles) live in the system_settings table instead.
"""
import json
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuración de la aplicación"""

    # API Settings
    API_TITLE: str = "Loyalty API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Customer loyalty, catalog and store services API"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_DEBUG: bool = False

    # Database
    DATABASE_URL: str = "postgresql://localhost:5432/loyalty_db"
    DB_CONNECT_TIMEOUT: int = 5
    DB_MAX_RETRIES: int = 3
    DB_RETRY_DELAY: float = 1.0

    # Auth
    JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_DAYS: int = 7
    AUTH_COOKIE_NAME: str = "auth-token"
    COOKIE_SECURE: bool = False

    # Login throttling
    LOGIN_MAX_ATTEMPTS: int = 5
    LOGIN_WINDOW_SECONDS: int = 15 * 60

    # Logging
    LOG_LEVEL: str = "INFO"

    # Chat assistant
    ANTHROPIC_API_KEY: str = ""
    CLAUDE_MODEL: str = "claude-haiku-4-5-20251001"
    CHAT_MAX_TOKENS: int = 1024
    CHAT_MAX_HISTORY_MESSAGES: int = 10
    CHAT_MAX_HISTORY_TOKENS: int = 8000

    # CORS - Can be string (comma-separated) or JSON array
    # Example: "http://localhost:3000,https://yourdomain.com" or '["http://localhost:3000"]'
    ALLOWED_ORIGINS: Optional[str] = "http://localhost:3000"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    def get_allowed_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into list"""
        if not self.ALLOWED_ORIGINS:
            return ["http://localhost:3000"]

        # Try JSON parse first (for array format)
        try:
            origins = json.loads(self.ALLOWED_ORIGINS)
            if isinstance(origins, list):
                return origins
        except (json.JSONDecodeError, ValueError):
            pass

        # Fall back to comma-separated string
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]


settings = Settings()
