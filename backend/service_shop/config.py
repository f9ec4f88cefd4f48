"""Application settings and validation."""

import os


class Settings:
    ENV: str
    JWT_SECRET: str
    JWT_ALGORITHM: str
    JWT_EXPIRE_MINUTES: int
    DATABASE_URL: str
    DB_TIMEOUT_SECONDS: float
    ALLOWED_ORIGINS: list
    LOG_LEVEL: str

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.JWT_SECRET = os.getenv("JWT_SECRET", "")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "60"))
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./service_shop.db")
        self.DB_TIMEOUT_SECONDS = float(os.getenv("DB_TIMEOUT_SECONDS", "10"))
        raw_origins = os.getenv("ALLOWED_ORIGINS", "")
        self.ALLOWED_ORIGINS = [o.strip() for o in raw_origins.split(",") if o.strip()]
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self._validate()

    def _validate(self):
        if not self.JWT_SECRET.strip():
            raise RuntimeError("JWT_SECRET is not defined; set it in the environment before starting the API")
        if self.JWT_EXPIRE_MINUTES <= 0:
            raise RuntimeError("JWT_EXPIRE_MINUTES must be a positive number of minutes")
        if self.DB_TIMEOUT_SECONDS <= 0:
            raise RuntimeError("DB_TIMEOUT_SECONDS must be positive")
