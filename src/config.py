"""Runtime settings.

Defaults live here and may be overridden by ``QUERYKIT_*`` environment
variables or a local ``.env`` file.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="QUERYKIT_", env_file=".env", extra="ignore")

    param_style: Literal["at", "named", "pyformat"] = "at"
    default_page_size: int = 10
    max_page_size: int = 500
    audit_dir: str = "runs"
    data_dir: str = "data"
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
