"""
Application Configuration
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Environment
    environment: str = "development"
    log_level: str = "INFO"

    # Policy gates (defaults until a calibration run suggests better ones)
    auto_process_min: float = 0.92  # At/above = eligible for auto-staging
    review_min: float = 0.75        # Below = human required at document level
    block_below: float = 0.50       # Never auto-suggested above this floor

    # Field-level review
    field_review_threshold: float = 0.85

    # Calibration
    calibration_bins: int = 10
    calibration_max_error: float = 0.02  # Tolerated error rate in the auto bucket

    # Export
    vendor_name: str = "ABH Manufacturing"

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
