"""Exception types raised by the exporter pipeline."""


class GkleError(Exception):
    """Base class for all gkle errors."""


class ConfigError(GkleError):
    """Raised when the configuration file is missing or invalid."""


class MalformedLineError(GkleError):
    """A line matched the grammar but one of its fields did not parse."""

    def __init__(self, reason: str, path: str = "", line_number: int = 0):
        self.reason = reason
        self.path = path
        self.line_number = line_number
        super().__init__(self._describe())

    def _describe(self) -> str:
        if self.path:
            return f"{self.path}:{self.line_number}: {self.reason}"
        return self.reason

    def at(self, path: str, line_number: int) -> "MalformedLineError":
        """Return a copy of this error located in *path* at *line_number*."""
        return MalformedLineError(self.reason, path, line_number)


class WatermarkNotFoundError(GkleError):
    """The persisted watermark names a file that is no longer in the directory.

    ``pending`` holds the files that sort after the watermark name, so the
    caller can resume from there instead of starting over.
    """

    def __init__(self, watermark: str, pending: list[str]):
        self.watermark = watermark
        self.pending = pending
        super().__init__(f"watermark {watermark} not found in log directory")


class ExportError(GkleError):
    """Raised when the sink refuses or fails to store a sample."""


class CheckpointError(GkleError):
    """Raised when the watermark cannot be read or durably written."""
