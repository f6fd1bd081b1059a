from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

load_dotenv()


class Settings(BaseSettings):
    """Runtime configuration for local-echo terminal sessions."""

    tmux_bin: str = "tmux"
    pipe_dir: Path = Path(".echoterm/pipes")
    terminal_width: int = Field(default=80, gt=0)
    terminal_height: int = Field(default=24, gt=0)
    default_pause_ms: int = Field(default=500, ge=0)
    # None keeps every diagnostic entry.
    diagnostics_capacity: int | None = Field(default=200, gt=0)
    pump_interval: float = 0.1
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_prefix = "ECHOTERM_"
        extra = "ignore"


settings = Settings()
