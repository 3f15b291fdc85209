"""
Configuration settings for the planning engine.
Load configuration from environment variables or a .env file.
"""
import os
from datetime import date
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
env_file = Path(__file__).parent.parent.parent / ".env"
if env_file.exists():
    load_dotenv(env_file)


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _as_date(value: str):
    value = value.strip()
    return date.fromisoformat(value) if value else None


class Settings:
    """Engine settings loaded from environment variables."""

    # Logging
    LOG_LEVEL = os.getenv("PROJECTPLAN_LOG_LEVEL", "INFO")

    # Resources
    DEFAULT_UNIT_COST = float(os.getenv("PROJECTPLAN_DEFAULT_UNIT_COST", "0"))
    RESOURCES_DISABLED = _as_bool(os.getenv("PROJECTPLAN_RESOURCES_DISABLED", "false"))
    ALLOCATION_PERCENTAGE = int(os.getenv("PROJECTPLAN_ALLOCATION_PERCENTAGE", "100"))

    # Time axis
    USE_BUSINESS_DAYS = _as_bool(os.getenv("PROJECTPLAN_USE_BUSINESS_DAYS", "true"))
    SHOW_DATES = _as_bool(os.getenv("PROJECTPLAN_SHOW_DATES", "false"))
    PROJECT_START = _as_date(os.getenv("PROJECTPLAN_PROJECT_START", ""))

    @classmethod
    def validate(cls) -> list[str]:
        """
        Check settings for values the engine cannot work with.
        Returns a list of problems, empty when everything is usable.
        """
        problems = []
        if cls.DEFAULT_UNIT_COST < 0:
            problems.append("PROJECTPLAN_DEFAULT_UNIT_COST must be non-negative")
        if not 0 < cls.ALLOCATION_PERCENTAGE <= 100:
            problems.append("PROJECTPLAN_ALLOCATION_PERCENTAGE must be in 1..100")
        if cls.SHOW_DATES and cls.PROJECT_START is None:
            problems.append("PROJECTPLAN_SHOW_DATES needs PROJECTPLAN_PROJECT_START")
        return problems


settings = Settings()
