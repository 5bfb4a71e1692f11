# chatapp/core/config.py

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./chatapp.db"

    SECRET_KEY: str = "CHANGE_THIS_TO_A_SUPER_SECRET_KEY"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    CORS_ORIGINS: List[str] = ["http://localhost:5173"]

    # Upper bound for GET /notifications
    NOTIFICATION_LIST_LIMIT: int = 50
    PAGE_SIZE: int = 10

    LOG_LEVEL: str = "INFO"

    # .env lives in the directory the server is started from
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
