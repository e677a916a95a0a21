from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import List, Any
import json
import re


IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def parse_cors_origins(v: Any) -> List[str]:
    """Parse CORS origins from string or list"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        # Try JSON parsing first
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [origin.strip() for origin in v.split(',') if origin.strip()]
    return []


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "KTTM IP Registry"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 3001

    # ==========================================
    # Database
    # ==========================================
    DATABASE_URL: str
    DB_SCHEMA: str = "public"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # 30 minutes
    DB_ECHO: bool = False

    RECORDS_TABLE: str = "ip_records"
    CONTRIBUTORS_TABLE: str = "ip_contributors"

    # ==========================================
    # Record identifiers
    # ==========================================
    RECORD_PREFIX: str = "KTTM-"
    RECORD_PAD: int = 0  # 0 => KTTM-21, 3 => KTTM-021
    RECORD_ID_LOCK_KEY: str = "kttm_ip_records_record_id_lock"
    RECORD_ID_MAX_ATTEMPTS: int = 10

    # ==========================================
    # CORS (stored as comma-separated string, parsed to list)
    # ==========================================
    CORS_ORIGINS_STR: str = "http://localhost:5173"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return parse_cors_origins(self.CORS_ORIGINS_STR)

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    @field_validator("DB_SCHEMA", "RECORDS_TABLE", "CONTRIBUTORS_TABLE")
    @classmethod
    def validate_identifier(cls, v: str) -> str:
        """Table and schema names are interpolated into SQL, so only plain identifiers pass"""
        if not IDENTIFIER_RE.match(v):
            raise ValueError(f"'{v}' is not a plain SQL identifier")
        return v

    @field_validator("RECORD_PREFIX")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("RECORD_PREFIX must not be blank")
        return v.strip()

    @field_validator("RECORD_ID_MAX_ATTEMPTS")
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("RECORD_ID_MAX_ATTEMPTS must be at least 1")
        return v

    @property
    def async_database_url(self) -> str:
        """DATABASE_URL rewritten for the asyncpg driver"""
        db_url = self.DATABASE_URL
        if db_url.startswith("postgres://"):
            db_url = db_url.replace("postgres://", "postgresql+asyncpg://", 1)
        elif db_url.startswith("postgresql://"):
            db_url = db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return db_url

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings


settings = Settings()
