"""
Application settings
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./data/receipts.db"

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:5173"]

    # File storage
    DATA_DIR: str = "./data"
    RECEIPTS_DIR: str = "./data/receipt_directory"

    # Only this declared content type is accepted for ingestion
    ACCEPTED_CONTENT_TYPE: str = "application/pdf"

    # LLM (OpenAI-compatible chat completions with file input)
    LLM_API_KEY: str = ""
    LLM_BASE_URL: str = ""
    LLM_MODEL: str = "gpt-4o-mini"
    LLM_TIMEOUT_SECONDS: float = 60.0

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
