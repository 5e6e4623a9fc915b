"""Helper utilities for naming backups and building WebDAV URLs."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, Optional

DIRECTORY_FORMAT = "%Y-%m-%d"
FILENAME_FORMAT = "%H:%M:%S"


def directory_name(moment: Optional[datetime] = None) -> str:
    """Return the remote directory name (calendar date) for *moment*."""

    moment = moment or datetime.now()
    return moment.strftime(DIRECTORY_FORMAT)


def backup_filename(moment: Optional[datetime] = None) -> str:
    moment = moment or datetime.now()
    return moment.strftime(FILENAME_FORMAT)


def retention_directory_name(moment: datetime, days: int) -> str:
    """Name of the dated directory that falls out of a *days* retention window."""

    return directory_name(moment - timedelta(days=days))


def join_url(base: str, *segments: str) -> str:
    """Join *segments* onto *base* with exactly one slash between parts.

    >>> join_url("https://cloud/dav/files/", "/alice", "2024-01-01/")
    'https://cloud/dav/files/alice/2024-01-01'
    """

    url = base.rstrip("/")
    for segment in segments:
        segment = segment.strip("/")
        if segment:
            url = f"{url}/{segment}"
    return url


def mask_sensitive(value: str, secrets: Iterable[str]) -> str:
    """Replace occurrences of secret values in *value* with '***'."""

    masked = value
    for secret in secrets:
        if secret:
            masked = masked.replace(secret, "***")
    return masked


__all__ = [
    "backup_filename",
    "directory_name",
    "join_url",
    "mask_sensitive",
    "retention_directory_name",
]
