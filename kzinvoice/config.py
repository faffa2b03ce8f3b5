"""
Configuration Management
========================

Application settings loaded from environment variables (``KZINVOICE_*``) or a
``.env`` file.
"""

from pathlib import Path
from typing import Optional

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings

BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Flask application settings"""
    model_config = ConfigDict(
        env_prefix="KZINVOICE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    database_url: str = Field(
        f"sqlite:///{BASE_DIR / 'instance' / 'invoices.db'}",
        description="SQLAlchemy database URI",
    )
    log_level: str = Field("INFO", description="Logging level")
    font_path: Optional[str] = Field(None, description="TTF font with Cyrillic glyphs for PDFs")
    upload_dir: str = Field(str(BASE_DIR / "uploads"), description="Directory holding signature/stamp images")
    max_upload_bytes: int = Field(5 * 1024 * 1024, description="Upload size limit")

    def to_flask_config(self) -> dict:
        return {
            "SQLALCHEMY_DATABASE_URI": self.database_url,
            "SQLALCHEMY_TRACK_MODIFICATIONS": False,
            "LOG_LEVEL": self.log_level.upper(),
            "PDF_FONT_PATH": self.font_path,
            "UPLOAD_DIR": self.upload_dir,
            "MAX_CONTENT_LENGTH": self.max_upload_bytes,
        }


def get_settings() -> Settings:
    return Settings()
