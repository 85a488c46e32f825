"""
Configuration management for LinkShelf.

Uses pydantic-settings for environment variable binding.
All settings can be overridden via environment variables with LINKSHELF_ prefix.
"""

import logging
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_TAG_PALETTE = [
    "#E74C3C", "#3498DB", "#2ECC71", "#F39C12", "#9B59B6",
    "#1ABC9C", "#E67E22", "#34495E", "#E91E63", "#009688",
]


class Settings(BaseSettings):
    """Application settings with environment variable binding."""

    model_config = SettingsConfigDict(
        env_prefix="LINKSHELF_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================
    # Data Storage
    # ==========================================
    data_dir: Path = Path.home() / ".linkshelf"
    """Root directory for the item database."""

    db_name: str = "linkshelf.sqlite"

    # ==========================================
    # Tags
    # ==========================================
    tag_palette: list[str] = Field(default_factory=lambda: list(DEFAULT_TAG_PALETTE))
    """Colors handed out to tags created on demand."""

    default_tag_color: str = "#808080"
    """Fallback for missing or malformed tag colors."""

    import_tag_color: str = "#007ACC"
    """Color for imported tags whose record carries none."""

    # ==========================================
    # Items
    # ==========================================
    default_terminal: str = "PowerShell"
    """Terminal used by Terminal items that don't name one."""

    recent_limit: int = 10
    """Default size of most-accessed / recently-accessed listings."""

    # ==========================================
    # Import / Export
    # ==========================================
    import_container_prefix: str = "Import"
    export_version: str = "1.0"

    # ==========================================
    # Logging
    # ==========================================
    log_level: str = "INFO"
    log_file: Path | None = None

    # ==========================================
    # Computed Properties
    # ==========================================
    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name

    @property
    def exports_dir(self) -> Path:
        return self.data_dir / "exports"

    def ensure_directories(self) -> None:
        """Create all required directories if they don't exist."""
        for directory in [self.data_dir, self.exports_dir]:
            directory.mkdir(parents=True, exist_ok=True)


# Global settings instance
settings = Settings()


def setup_logging(level: str | None = None) -> None:
    """Configure application logging."""
    log_level = level or settings.log_level

    handlers: list[logging.Handler] = [
        logging.StreamHandler(sys.stderr),
    ]

    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file))

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        handlers=handlers,
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name."""
    return logging.getLogger(f"linkshelf.{name}")
