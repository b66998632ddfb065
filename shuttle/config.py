from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./shuttle.db"
    PGHOST: Optional[str] = None
    PGDATABASE: Optional[str] = None
    PGUSER: Optional[str] = None
    PGPASSWORD: Optional[str] = None
    PGSSLMODE: str = "require"

    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    BCRYPT_ROUNDS: int = 12
    ADMIN_SETUP_KEY: Optional[str] = None

    # Rate limiting (requests per window, per client)
    REGISTER_RATE_LIMIT: int = 5
    REGISTER_RATE_WINDOW_SECONDS: float = 60
    LOGIN_RATE_LIMIT: int = 5
    LOGIN_RATE_WINDOW_SECONDS: float = 60
    ADMIN_LOGIN_RATE_LIMIT: int = 3
    ADMIN_LOGIN_RATE_WINDOW_SECONDS: float = 60
    ADMIN_LOGIN_FAILURE_RATE_LIMIT: int = 1
    ADMIN_LOGIN_FAILURE_RATE_WINDOW_SECONDS: float = 300
    BOOKING_RATE_LIMIT: int = 10
    BOOKING_RATE_WINDOW_SECONDS: float = 60
    RATE_LIMIT_MAX_TRACKED_KEYS: int = 1000
    TRUST_FORWARDED_FOR: bool = True

    # Payments
    PAYMENT_PROVIDER: str = "simulated"
    STRIPE_SECRET_KEY: Optional[str] = None
    PAYMENT_CURRENCY: str = "eur"

    # Application
    PROJECT_NAME: str = "Shuttle Booking Marketplace"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    AUTO_CREATE_TABLES: bool = True
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    @property
    def database_url(self) -> str:
        if self.PGHOST:
            return f"postgresql://{self.PGUSER}:{self.PGPASSWORD}@{self.PGHOST}/{self.PGDATABASE}?sslmode={self.PGSSLMODE}"
        return self.DATABASE_URL

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
