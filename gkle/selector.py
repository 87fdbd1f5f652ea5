"""Chooses which rotated gatekeeper logs are ready to be exported."""

import bisect
import logging
import os
import re

from gkle.errors import WatermarkNotFoundError

logger = logging.getLogger(__name__)

# gatekeeper_YYYY_MM_DD_HH_MM.log; zero padded, so name order is time order
LOG_FILE_PATTERN = re.compile(r"^gatekeeper_\d{4}_\d{2}_\d{2}_\d{2}_\d{2}\.log$")


class FileSelector:
    def __init__(self, log_dir: str):
        self._log_dir = os.path.abspath(log_dir)

    @property
    def log_dir(self) -> str:
        return self._log_dir

    def select(self, entries: list[str], watermark: str | None) -> list[str]:
        """Return the paths of the files still to process, oldest first.

        The newest rotated file is never returned because gatekeeper is still
        appending to it. With no watermark every other file is returned.
        Raises WatermarkNotFoundError when the watermark is not among
        *entries*; the error carries the files that sort after it.
        """
        names = sorted(name for name in entries if LOG_FILE_PATTERN.match(name))
        if not names:
            return []

        closed = [os.path.join(self._log_dir, name) for name in names[:-1]]
        if not watermark:
            return closed

        watermark_name = os.path.basename(watermark)
        if os.path.dirname(watermark) == self._log_dir and watermark_name in names:
            position = names.index(watermark_name)
            return closed[position + 1:]

        position = bisect.bisect_right(names[:-1], watermark_name)
        raise WatermarkNotFoundError(watermark, closed[position:])

    def scan(self, watermark: str | None) -> list[str]:
        """Snapshot the log directory and select from it."""
        with os.scandir(self._log_dir) as it:
            entries = [entry.name for entry in it if entry.is_file()]
        selected = self.select(entries, watermark)
        logger.debug("Selected %d of %d entries in %s",
                     len(selected), len(entries), self._log_dir)
        return selected
