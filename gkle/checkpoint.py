"""Crash-safe persistence of the last fully exported log file."""

import logging
import os

from gkle.errors import CheckpointError

logger = logging.getLogger(__name__)


def _fsync_dir(path: str) -> None:
    fd = os.open(path, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


class Checkpoint:
    """Single-line watermark file holding the absolute path of a log file.

    save() writes a temporary file, fsyncs it, renames it over the watermark
    and fsyncs the directory, so after a crash the file holds either the old
    or the new value in full.
    """

    def __init__(self, path: str):
        self._path = os.path.abspath(path)
        self._tmp_path = self._path + ".tmp"

    @property
    def path(self) -> str:
        return self._path

    def load(self) -> str | None:
        """Return the watermark, or None when nothing was saved yet."""
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                value = f.read().strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CheckpointError(f"error reading checkpoint {self._path}: {e}") from e
        return value or None

    def save(self, log_file: str) -> None:
        directory = os.path.dirname(self._path)
        try:
            os.makedirs(directory, exist_ok=True)
            with open(self._tmp_path, "w", encoding="utf-8") as f:
                f.write(log_file)
                f.flush()
                os.fsync(f.fileno())
            os.replace(self._tmp_path, self._path)
            _fsync_dir(directory)
        except OSError as e:
            if os.path.exists(self._tmp_path):
                os.unlink(self._tmp_path)
            raise CheckpointError(f"error saving checkpoint {self._path}: {e}") from e
        logger.debug("Checkpoint advanced to %s", log_file)
