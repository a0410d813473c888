"""Configuration management using python-dotenv."""
import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

# Load .env file from project root
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(dotenv_path=env_path)


def _default_config_dir() -> Optional[str]:
    override = os.getenv("IDXWATCH_CONFIG_DIR")
    if override:
        return override
    try:
        return str(Path.home() / ".config" / "idxwatch")
    except RuntimeError:
        return None


class AppConfig:
    """Application configuration."""
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    CONFIG_DIR: Optional[str] = _default_config_dir()
    EXPORT_DIR: Optional[str] = os.getenv("IDXWATCH_EXPORT_DIR") or None
    HTTP_TIMEOUT: float = float(os.getenv("IDXWATCH_HTTP_TIMEOUT", "10"))
    DEFAULT_REFRESH_SECS: int = int(os.getenv("IDXWATCH_REFRESH_SECS", "1"))
    NEWS_REFRESH_SECS: int = int(os.getenv("IDXWATCH_NEWS_REFRESH_SECS", "300"))
    POLL_TIMEOUT_MS: int = int(os.getenv("IDXWATCH_POLL_TIMEOUT_MS", "100"))


# Singleton instance
app_config = AppConfig()
