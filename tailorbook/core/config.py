from pydantic_settings import BaseSettings
from functools import lru_cache
from pathlib import Path
from typing import List
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    PROJECT_NAME: str = "Tailorbook"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"

    DATA_DIR: str = "./data"
    DATABASE_FILENAME: str = "data.db"

    # Automatic backups kept before a new one is written on startup
    AUTO_BACKUP_RETENTION: int = 7
    DEFAULT_FONT_SIZE: str = "14"

    LOG_LEVEL: str = "INFO"

    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3001",
        "http://127.0.0.1:3001",
    ]

    @property
    def database_dir(self) -> Path:
        return Path(self.DATA_DIR) / "database"

    class Config:
        case_sensitive = True

@lru_cache()
def get_settings() -> Settings:
    return Settings()
