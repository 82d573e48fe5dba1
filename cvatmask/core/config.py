from functools import lru_cache
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Formats OpenCV writes losslessly for a single 8-bit channel
SUPPORTED_MASK_EXTENSIONS = (".png", ".bmp", ".tif", ".tiff", ".pgm")


class Settings(BaseSettings):
    """Mask generation settings loaded from ``CVATMASK_*`` environment variables.

    A local .env file is honoured for convenience; explicit environment
    variables always win over it.
    """

    log_level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    log_format: Literal["json", "text"] = "json"

    max_workers: Optional[int] = Field(
        default=None,
        ge=1,
        description="Upper bound on images processed concurrently; unset uses the thread pool default",
    )
    mask_extension: str = Field(
        default=".png",
        description="File suffix (and therefore encoding) of written masks",
    )
    normalize_boxes: bool = Field(
        default=False,
        description="Swap inverted box corners instead of rasterizing such boxes as empty",
    )
    write_instances: bool = Field(
        default=False,
        description="Also write one mask per instance under <label>/<image name without extension>/",
    )

    model_config = SettingsConfigDict(
        env_prefix="CVATMASK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("mask_extension")
    @classmethod
    def _check_extension(cls, value: str) -> str:
        ext = value.lower()
        if not ext.startswith("."):
            ext = f".{ext}"
        if ext not in SUPPORTED_MASK_EXTENSIONS:
            raise ValueError(f"unsupported mask extension {value!r}; expected one of {SUPPORTED_MASK_EXTENSIONS}")
        return ext


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Lazily load and cache settings to avoid re-parsing .env on each call."""
    load_dotenv(override=False)
    return Settings()
