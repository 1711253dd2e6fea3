"""Secret MCP configuration — loaded from environment / .env file."""

import os
import sys
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from secret_mcp.database import database_url


def platform_data_dir() -> Path:
    """OS data directory the desktop app and the tool server agree on."""
    home = Path.home()
    if sys.platform == "darwin":
        return home / "Library" / "Application Support"
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        return Path(appdata) if appdata else home / "AppData" / "Roaming"
    xdg = os.environ.get("XDG_DATA_HOME")
    return Path(xdg) if xdg else home / ".local" / "share"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="SECRET_MCP_", extra="ignore")

    env: str = "production"
    log_level: str = "INFO"

    # Storage location
    data_dir: Path | None = None  # overrides the platform data directory
    app_dir_name: str = "secret-mcp"
    db_filename: str = "secrets.db"

    @property
    def app_dir(self) -> Path:
        base = self.data_dir if self.data_dir is not None else platform_data_dir()
        return base / self.app_dir_name

    @property
    def db_path(self) -> Path:
        return self.app_dir / self.db_filename

    @property
    def database_url(self) -> str:
        return database_url(self.db_path)
