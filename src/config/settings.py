"""Environment configuration management for the Trust Witness server."""

from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Server configuration
    APP_NAME: str = "Trust Witness Server"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "127.0.0.1"
    PORT: int = 9127

    # Source reliability persistence (in-memory unless enabled)
    USE_REDIS: bool = False
    REDIS_URL: str = "redis://localhost:6379"
    REDIS_NAMESPACE: str = "trust:sources"

    # Trust weights (must sum to 1.0)
    WEIGHT_BASE: float = 0.30
    WEIGHT_FRESHNESS: float = 0.25
    WEIGHT_RELIABILITY: float = 0.25
    WEIGHT_CONSENSUS: float = 0.20

    # Grade thresholds (inclusive lower bounds)
    GRADE_EXCELLENT: float = 95.0
    GRADE_GOOD: float = 85.0
    GRADE_FAIR: float = 70.0
    GRADE_POOR: float = 50.0

    # Trust decay
    DECAY_POLICY: str = "exponential"  # linear | exponential | step
    HALF_LIFE_SECONDS: float = 1200.0  # 20 minutes
    GRACE_PERIOD_SECONDS: float = 30.0
    DECAY_FLOOR: float = 0.05

    # Source reliability
    MIN_OBSERVATIONS_FOR_RELIABILITY: int = 10
    NEUTRAL_RELIABILITY: float = 70.0

    # Consensus
    CONSENSUS_RELATIVE_TOLERANCE: float = 0.05  # 5% band
    CONSENSUS_ABSOLUTE_TOLERANCE: float = 0.0

    # Constraint catalogue
    CONSTRAINT_CATALOGUE_PATH: Optional[str] = None
    CONSTRAINT_MARGINAL_PERCENT: float = 10.0

    # Reversibility
    REVERSAL_GRACE_WINDOW_SECONDS: float = 300.0  # 5 minutes
    REVERSAL_STEP_COST: float = 1.0

    # Decision quality
    VARIANCE_TOLERANCE: float = 0.05

    # CORS settings
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    CORS_CREDENTIALS: bool = True
    CORS_METHODS: list[str] = ["*"]
    CORS_HEADERS: list[str] = ["*"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"  # Allow extra env vars without error

# Global settings instance
settings = Settings()

def get_cors_config() -> dict:
    """Get CORS configuration."""
    return {
        "allow_origins": settings.CORS_ORIGINS,
        "allow_credentials": settings.CORS_CREDENTIALS,
        "allow_methods": settings.CORS_METHODS,
        "allow_headers": settings.CORS_HEADERS,
    }
