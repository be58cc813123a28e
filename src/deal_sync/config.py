"""
Configuration management for the Deal Sync engine.

Loads settings from environment variables with sensible defaults.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from project root
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / '.env'
if _env_file.exists():
    load_dotenv(_env_file)


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes')


class Config:
    """Configuration settings loaded from environment."""

    # Postgres: DATABASE_URL first, then the hosting provider aliases
    DATABASE_URL: str = (
        os.getenv('DATABASE_URL', '')
        or os.getenv('POSTGRES_URL', '')
        or os.getenv('NEON_DATABASE_URL', '')
    )
    DATABASE_SSL: bool = _env_flag('DATABASE_SSL')
    DATABASE_POOL_SIZE: int = int(os.getenv('DATABASE_POOL_SIZE', '5'))

    # Pipedrive
    PIPEDRIVE_BASE_URL: str = os.getenv('PIPEDRIVE_BASE_URL', 'https://api.pipedrive.com/v1')
    PIPEDRIVE_API_TOKEN: str = os.getenv('PIPEDRIVE_API_TOKEN', '')
    PIPEDRIVE_TIMEOUT_SECONDS: float = float(os.getenv('PIPEDRIVE_TIMEOUT_SECONDS', '30'))
    PIPEDRIVE_MAX_RETRIES: int = int(os.getenv('PIPEDRIVE_MAX_RETRIES', '3'))

    # Product classification
    TRAINING_CODE_MARKER: str = os.getenv('TRAINING_CODE_MARKER', 'form-')

    # Logging
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO')
    LOG_JSON: bool = _env_flag('LOG_JSON')

    @classmethod
    def use_ssl(cls) -> bool:
        """Neon databases always need TLS, others only when DATABASE_SSL is set."""
        return cls.DATABASE_SSL or 'neon.tech' in cls.DATABASE_URL

    @classmethod
    def validate(cls) -> list[str]:
        """
        Validate that required configuration is present.

        Returns:
            List of missing required configuration keys
        """
        missing = []
        if not cls.DATABASE_URL:
            missing.append('DATABASE_URL')
        if not cls.PIPEDRIVE_BASE_URL:
            missing.append('PIPEDRIVE_BASE_URL')
        if not cls.PIPEDRIVE_API_TOKEN:
            missing.append('PIPEDRIVE_API_TOKEN')
        return missing


# Singleton config instance
config = Config()
