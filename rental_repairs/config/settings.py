"""
Environment configuration for the maintenance scheduling engine.
Uses Pydantic's settings management to handle environment variables
with proper type validation and default values.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

# Load environment variables from .env file if it exists
env_path = Path('.') / '.env'
load_dotenv(dotenv_path=env_path)


class LoggingSettings(BaseSettings):
    """Logging configuration settings"""

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or text
    LOG_FILE: Optional[str] = None
    ENABLE_STRUCTURED_LOGGING: bool = True

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore"
    }

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Log level must be one of {valid_levels}')
        return v.upper()

    @field_validator('LOG_FORMAT')
    @classmethod
    def validate_log_format(cls, v):
        if v.lower() not in ('json', 'text'):
            raise ValueError("Log format must be 'json' or 'text'")
        return v.lower()


class SchedulingSettings(BaseSettings):
    """Capacity, window and horizon limits used by the scheduling engine"""

    DAILY_CAPACITY: int = Field(default=2, description="Active assignments per worker per day")
    EMERGENCY_DAILY_CAPACITY: int = Field(default=3, description="Relaxed cap on the emergency path")
    ASSIGNMENT_WINDOW_HOURS: int = Field(default=4, description="Nominal length of one booking")
    AVAILABILITY_HORIZON_DAYS: int = Field(default=60)
    OVERLOAD_THRESHOLD: int = Field(default=5, description="More active assignments than this is overloaded")
    WORKLOAD_WINDOW_DAYS: int = Field(default=7)
    RANKING_WORKLOAD_DAYS: int = Field(default=30)
    UNAVAILABLE_DAYS_PENALTY: int = Field(default=999)
    RECOMMENDATION_LIMIT: int = Field(default=3)
    EMERGENCY_ESCALATION_HOURS: int = Field(default=1)

    model_config = {
        "env_prefix": "SCHEDULING_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore"
    }

    @field_validator(
        'DAILY_CAPACITY',
        'EMERGENCY_DAILY_CAPACITY',
        'ASSIGNMENT_WINDOW_HOURS',
        'AVAILABILITY_HORIZON_DAYS',
        'WORKLOAD_WINDOW_DAYS',
        'RANKING_WORKLOAD_DAYS',
        'RECOMMENDATION_LIMIT',
    )
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError('Value must be positive')
        return v

    @model_validator(mode='after')
    def validate_emergency_capacity(self):
        if self.EMERGENCY_DAILY_CAPACITY < self.DAILY_CAPACITY:
            raise ValueError('Emergency capacity cannot be lower than the daily capacity')
        return self


class Settings(BaseSettings):
    """Main application settings"""

    ENVIRONMENT: str = "development"
    PROJECT_NAME: str = "Rental Repairs"
    SERVICE_NAME: str = "rental-repairs"

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    scheduling: SchedulingSettings = Field(default_factory=SchedulingSettings)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore"
    }

    @field_validator('ENVIRONMENT')
    @classmethod
    def validate_environment(cls, v):
        valid_envs = ['development', 'staging', 'production', 'testing']
        if v not in valid_envs:
            raise ValueError(f'Environment must be one of {valid_envs}')
        return v

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_testing(self) -> bool:
        return self.ENVIRONMENT == "testing"


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings"""
    return Settings()
