"""Backup and retention cycles run by the scheduler."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .config import Settings
from .dump import DatabaseDumper, ProducerError
from .upload import StreamError, upload_file_multipart
from .utils import backup_filename, directory_name, mask_sensitive, retention_directory_name
from .webdav import RemoteStatusError, WebDAVClient, WebDAVError

LOGGER = logging.getLogger(__name__)

CYCLE_ERRORS = (ProducerError, WebDAVError, StreamError)


@dataclass(frozen=True)
class CycleResult:
    success: bool
    step: str
    error: Optional[str] = None


@dataclass
class BackupRunner:
    settings: Settings
    client: WebDAVClient
    dumper: DatabaseDumper
    clock: Callable[[], datetime] = datetime.now
    logger: logging.Logger = LOGGER

    def run_backup_cycle(self) -> CycleResult:
        """Dump, ensure today's directory, upload, then delete the local dump.

        Each step only runs when the previous one succeeded. A failure is
        logged and ends the cycle; nothing done so far is rolled back.
        """

        # Two clock reads: the directory and the file name may straddle midnight.
        directory = directory_name(self.clock())
        filename = backup_filename(self.clock())
        step = "dump"
        try:
            local_path = self.dumper.dump(filename)

            step = "directory"
            self.client.ensure_directory(directory)

            step = "upload"
            url = self.client.url_for(directory, filename)
            with upload_file_multipart(self.client, url, local_path) as response:
                if not response.ok:
                    raise RemoteStatusError(
                        f"Upload of '{local_path}' to {url} rejected: HTTP {response.status_code}",
                        response.status_code,
                    )
            self.logger.info("Uploaded '%s' to %s.", local_path, url)

            step = "local-cleanup"
            self.dumper.remove(local_path)
        except CYCLE_ERRORS as exc:
            return self._failed("Backup", step, exc)

        self.logger.info("Backup cycle finished: %s/%s", directory, filename)
        return CycleResult(success=True, step="done")

    def run_retention_cycle(self) -> CycleResult:
        """Delete the directory that just left the retention window, if present."""

        name = retention_directory_name(self.clock(), self.settings.retention_days)
        step = "check"
        try:
            if not self.client.exists(name):
                self.logger.info("No expired remote directory '%s'.", name)
                return CycleResult(success=True, step=step)

            step = "delete"
            if not self.client.delete(name):
                raise RemoteStatusError(f"Server refused to delete remote directory '{name}'.")
        except CYCLE_ERRORS as exc:
            return self._failed("Retention", step, exc)

        self.logger.info("Deleted expired remote directory '%s'.", name)
        return CycleResult(success=True, step="done")

    # ------------------------------------------------------------------
    def _failed(self, cycle: str, step: str, exc: Exception) -> CycleResult:
        message = mask_sensitive(str(exc), [self.settings.password])
        self.logger.error("%s cycle aborted at step '%s': %s", cycle, step, message)
        return CycleResult(success=False, step=step, error=message)


__all__ = ["BackupRunner", "CycleResult"]
