"""Configuration management for MathML Extractor."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _get_base_dir() -> Path:
    """Return the project root directory."""
    return Path(__file__).resolve().parents[1]


# Load .env from project root before reading any settings
_env_path = _get_base_dir() / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


def _read_port() -> int:
    """Read the API port, falling back to 8000 on a non-numeric value."""
    try:
        return int(os.getenv("MATHML_PORT", "8000"))
    except ValueError:
        return 8000


def _read_max_workers() -> int:
    """Read worker count for span rendering; anything below 1 means sequential."""
    raw = os.getenv("MATHML_MAX_WORKERS", "1")
    try:
        value = int(raw)
    except ValueError:
        return 1
    return max(value, 1)


@dataclass
class Settings:
    """Application settings."""

    base_dir: Path = _get_base_dir()
    host: str = os.getenv("MATHML_HOST", "127.0.0.1")
    port: int = _read_port()
    log_level: str = os.getenv("MATHML_LOG_LEVEL", "INFO")
    log_file: Path = Path(
        os.getenv("MATHML_LOG_FILE", str(base_dir / "mathml_extractor.log"))
    )
    renderer: str = os.getenv("MATHML_RENDERER", "latex2mathml")
    max_workers: int = _read_max_workers()


settings = Settings()
