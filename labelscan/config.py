from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # App
    APP_NAME: str = "LabelScan"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000"]

    # Date extraction
    PREFIX_CONFIDENCE_BOOST: float = 0.10
    PREFIX_SEARCH_WINDOW: int = 30
    EXPIRY_MAX_PAST_MONTHS: int = 6
    EXPIRY_MAX_FUTURE_YEARS: int = 10

    # Live scanning sessions
    SESSION_DEBOUNCE_MS: int = 100
    SESSION_CONFIDENCE_STEP: float = 0.15
    SESSION_SELECT_THRESHOLD: float = 0.6
    SESSION_HINT_THRESHOLD: float = 0.5
    SESSION_HISTORY_SIZE: int = 20
    SESSION_TOP_N: int = 5

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
