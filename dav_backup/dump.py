"""Local database dumps produced by an external dump program."""
from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Union

from .config import Settings

LOGGER = logging.getLogger(__name__)


class ProducerError(Exception):
    """Raised when the dump program fails or a local dump cannot be handled."""


@dataclass
class DatabaseDumper:
    settings: Settings
    logger: logging.Logger = LOGGER

    def command(self, output: Path) -> List[str]:
        return [self.settings.dump_program, "-f", str(output)]

    def dump(self, filename: Union[str, Path]) -> Path:
        """Run the dump program writing to *filename* inside the work directory.

        An incomplete output file is left in place when the program fails.
        """

        output = self.settings.work_dir / filename
        command = self.command(output)
        self.logger.info("Running dump command: %s", " ".join(command))
        try:
            result = subprocess.run(command, capture_output=True, text=True)
        except OSError as exc:
            raise ProducerError(f"Cannot start '{command[0]}': {exc}") from exc

        if result.stdout:
            self.logger.info("STDOUT: %s", result.stdout.strip())
        if result.stderr:
            self.logger.warning("STDERR: %s", result.stderr.strip())
        if result.returncode != 0:
            raise ProducerError(
                f"Command '{command[0]}' exited with code {result.returncode}: {result.stderr.strip()}"
            )
        self.logger.info("Dump written to '%s'.", output)
        return output

    def remove(self, path: Union[str, Path]) -> None:
        path = Path(path)
        try:
            path.unlink()
        except OSError as exc:
            raise ProducerError(f"Cannot delete local dump '{path}': {exc}") from exc
        self.logger.info("Deleted local dump '%s'.", path)


__all__ = ["DatabaseDumper", "ProducerError"]
