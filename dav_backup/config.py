"""Configuration model for the WebDAV backup daemon."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Optional

DEFAULT_DUMP_PROGRAM = "pg_dumpall"
BACKUP_INTERVAL = timedelta(hours=4)
RETENTION_INTERVAL = timedelta(hours=24)
RETENTION_DAYS = 3


class ConfigError(Exception):
    """Raised when the startup configuration is incomplete or invalid."""


@dataclass(frozen=True)
class Settings:
    base_url: str
    username: str
    password: str
    dump_program: str = DEFAULT_DUMP_PROGRAM
    work_dir: Path = Path(".")
    backup_interval: timedelta = BACKUP_INTERVAL
    retention_interval: timedelta = RETENTION_INTERVAL
    retention_days: int = RETENTION_DAYS
    request_timeout: Optional[float] = None

    def validate(self) -> None:
        missing = [
            flag
            for flag, value in (
                ("baseURL", self.base_url),
                ("username", self.username),
                ("password", self.password),
            )
            if not value
        ]
        if missing:
            raise ConfigError(f"Missing required options: {', '.join(missing)}.")
        if not self.base_url.startswith(("http://", "https://")):
            raise ConfigError(f"baseURL must be an http(s) URL, got '{self.base_url}'.")
        if not self.dump_program:
            raise ConfigError("The dump program cannot be empty.")
        if self.backup_interval <= timedelta(0) or self.retention_interval <= timedelta(0):
            raise ConfigError("Scheduling intervals must be positive.")
        if self.retention_days <= 0:
            raise ConfigError("retention_days must be positive.")

    @property
    def upload_root(self) -> str:
        """WebDAV collection that holds the dated backup directories."""
        return f"{self.base_url.rstrip('/')}/{self.username}"

    @property
    def auth(self):
        return (self.username, self.password)

    @classmethod
    def from_options(
        cls,
        base_url: Optional[str],
        username: Optional[str],
        password: Optional[str],
        *,
        dump_program: Optional[str] = None,
        work_dir: Optional[str] = None,
    ) -> "Settings":
        settings = cls(
            base_url=(base_url or "").strip(),
            username=(username or "").strip(),
            password=password or "",
            dump_program=dump_program or DEFAULT_DUMP_PROGRAM,
            work_dir=Path(work_dir).expanduser() if work_dir else Path("."),
        )
        settings.validate()
        return settings

    def __repr__(self) -> str:
        return (
            f"Settings(base_url={self.base_url!r}, username={self.username!r}, "
            f"password='***', dump_program={self.dump_program!r}, work_dir={str(self.work_dir)!r})"
        )


__all__ = [
    "BACKUP_INTERVAL",
    "ConfigError",
    "DEFAULT_DUMP_PROGRAM",
    "RETENTION_DAYS",
    "RETENTION_INTERVAL",
    "Settings",
]
