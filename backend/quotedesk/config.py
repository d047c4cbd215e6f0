"""Application configuration module."""

from pathlib import Path
from pydantic_settings import BaseSettings

# 計算專案根目錄的絕對路徑（相對於此文件的位置）
_THIS_DIR = Path(__file__).parent  # backend/quotedesk/
_BACKEND_ROOT = _THIS_DIR.parent  # backend/
_PROJECT_ROOT = _BACKEND_ROOT.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    # Backend Configuration
    backend_host: str = "localhost"
    backend_port: int = 8000
    backend_debug: bool = False
    cors_origins: list[str] = ["*"]

    # Document templates
    templates_dir: str = str(_THIS_DIR / "templates")
    quotation_template: str = "quotation"

    # Reference photo fetching
    photo_fetch_timeout_seconds: float = 10.0
    photo_fetch_concurrency: int = 4
    photo_max_bytes: int = 10 * 1024 * 1024

    # Result caching
    activity_cache_ttl_seconds: int = 300
    cache_max_entries: int = 1024

    # Realtime change feed
    change_feed_queue_size: int = 256

    # Duplicate company detection
    duplicate_distance_threshold: int = 2
    duplicate_strip_trailing_digits: bool = True

    # Logging
    log_level: str = "INFO"

    @property
    def templates_dir_path(self) -> Path:
        """Get templates directory path as Path object (always absolute)."""
        path = Path(self.templates_dir)
        # 如果是相對路徑，基於專案根目錄解析
        if not path.is_absolute():
            path = _PROJECT_ROOT / path
        return path

    model_config = {
        "env_file": str(_ENV_FILE),
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
