from pydantic_settings import BaseSettings
from typing import List
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

class Settings(BaseSettings):
    # Database settings
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./todo.db")
    DB_ECHO: bool = os.getenv("DB_ECHO", "false").lower() in ("true", "1", "yes")
    # Upper bound for a single store call (busy wait, statement timeout, pool checkout)
    DB_TIMEOUT_SECONDS: float = float(os.getenv("DB_TIMEOUT_SECONDS", "10"))
    # How long a write waits for another write on the same owner's task list
    STORE_LOCK_TIMEOUT_SECONDS: float = float(os.getenv("STORE_LOCK_TIMEOUT_SECONDS", "5"))

    # JWT settings
    SECRET_KEY: str = os.getenv("SECRET_KEY", "your-super-secret-key-change-in-production")
    ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

    # Project settings
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "Todo List API")
    API_V1_STR: str = "/api/v1"
    HOST: str = os.getenv("HOST", "127.0.0.1")
    PORT: int = int(os.getenv("PORT", "8000"))
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    # "console" or "json"; empty picks json in production
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "")

    class Config:
        env_file = ".env"
        # Ignore unrelated variables in .env
        extra = "ignore"

    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

settings = Settings()
