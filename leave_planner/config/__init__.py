"""
Application Settings
Load from environment variables
"""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_DIR = Path(__file__).resolve().parent


class Settings(BaseSettings):
    """Application settings from environment"""

    # ======================
    # Application
    # ======================
    APP_ENV: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # ======================
    # Benefit rules
    # ======================
    BENEFIT_RULES_FILE: Optional[str] = None

    # ======================
    # Engine guards
    # ======================
    MAX_TOP_UP_ITERATIONS: int = 8
    MAX_PASSES_PER_MONTH: int = 6

    # ======================
    # Pydantic v2 config
    # ======================
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def benefit_rules_path(self) -> Path:
        if self.BENEFIT_RULES_FILE:
            return Path(self.BENEFIT_RULES_FILE)
        return CONFIG_DIR / "benefit_rules.yml"


settings = Settings()
