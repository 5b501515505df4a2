"""Run logger for conversions: console output plus an optional log file.

Console messages go through the standard ``logging`` hierarchy, so the
CLI's logging configuration applies to them. When a log file is
configured, every message is also appended to it as

    [12:00:01] INFO    | Found 3 posts to convert
    [12:00:02] SUCCESS | Converted: "Hello World" (hello-world)

followed by a summary block at the end of the run.
"""

import logging
from datetime import datetime
from pathlib import Path
from time import monotonic

from schemas.options import LoggerConfig
from schemas.results import ConversionErrorRecord, format_duration

logger = logging.getLogger(__name__)

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

FILE_FORMAT = "[%(asctime)s] %(levelname)-7s | %(message)s"
FILE_DATE_FORMAT = "%H:%M:%S"
DIVIDER = "=" * 80


class ConversionLogger:
    """Logs conversion progress and writes an end-of-run summary.

    Attributes:
        config: Logger settings
        http403_errors: Images that failed with HTTP 403, in the order tracked
    """

    def __init__(self, config: LoggerConfig | None = None):
        self.config = config or LoggerConfig()
        self.http403_errors: list[dict[str, str]] = []
        self._started = monotonic()
        self._file_handler: logging.FileHandler | None = None
        self._file_logger: logging.Logger | None = None

        if self.config.file_path is not None and self.config.verbosity != "quiet":
            self._open_log_file(Path(self.config.file_path))

    @property
    def log_file(self) -> Path | None:
        if self._file_handler is None:
            return None
        return Path(self._file_handler.baseFilename)

    def _open_log_file(self, path: Path) -> None:
        try:
            with path.open("a", encoding="utf-8") as f:
                f.write(
                    f"{DIVIDER}\nHashnode Export Conversion Log\n"
                    f"Started: {datetime.now():%Y-%m-%d %H:%M:%S}\n{DIVIDER}\n\n"
                )
            handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not open log file {path}, logging to console only: {e}")
            return

        handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATE_FORMAT))
        file_logger = logging.Logger(f"{__name__}.file")
        file_logger.setLevel(logging.DEBUG if self.config.verbosity == "verbose" else logging.INFO)
        file_logger.addHandler(handler)

        self._file_handler = handler
        self._file_logger = file_logger

    def _log(self, level: int, message: str) -> None:
        logger.log(level, message)
        if self._file_logger is not None:
            self._file_logger.log(level, message)

    def debug(self, message: str) -> None:
        self._log(logging.DEBUG, message)

    def info(self, message: str) -> None:
        self._log(logging.INFO, message)

    def success(self, message: str) -> None:
        self._log(SUCCESS, message)

    def warn(self, message: str) -> None:
        self._log(logging.WARNING, message)

    def error(self, message: str) -> None:
        self._log(logging.ERROR, message)

    def track_http403(self, slug: str, filename: str, url: str) -> None:
        """Remember an image that was denied, for the summary."""
        self.http403_errors.append(
            {
                "slug": slug,
                "filename": filename,
                "url": url,
                "timestamp": datetime.now().strftime(FILE_DATE_FORMAT),
            }
        )

    def write_summary(
        self,
        converted: int,
        skipped: int,
        errors: list[ConversionErrorRecord] | int,
    ) -> None:
        """Log the end-of-run summary.

        Args:
            converted: Number of posts converted
            skipped: Number of posts skipped
            errors: Failed posts, or just their count
        """
        error_count = errors if isinstance(errors, int) else len(errors)
        duration = format_duration(monotonic() - self._started)

        lines = [
            DIVIDER,
            "CONVERSION SUMMARY",
            f"Completed: {datetime.now():%Y-%m-%d %H:%M:%S}",
            f"Duration: {duration}",
            DIVIDER,
            f"Converted: {converted} posts",
            f"Skipped: {skipped} posts",
            f"Post Errors: {error_count}",
            f"Image 403 Failures: {len(self.http403_errors)} images",
            DIVIDER,
        ]
        if not isinstance(errors, int):
            lines[-1:-1] = [f"  {record.slug}: {record.error}" for record in errors]

        for line in lines:
            self.info(line)

        if self.http403_errors:
            self._write_http403_section()

    def _write_http403_section(self) -> None:
        by_slug: dict[str, list[dict[str, str]]] = {}
        for entry in self.http403_errors:
            by_slug.setdefault(entry["slug"], []).append(entry)

        self.info(DIVIDER)
        self.info(
            f"HTTP 403 IMAGE FAILURES ({len(self.http403_errors)} images "
            f"across {len(by_slug)} posts)"
        )
        self.info(DIVIDER)

        for slug, entries in by_slug.items():
            self.info(f"Post: {slug}")
            for index, entry in enumerate(entries, start=1):
                self.info(f"  [{index}/{len(entries)}] {entry['filename']}")
                self.info(f"    {entry['url']}")

        self.info(DIVIDER)

    def close(self) -> None:
        """Flush and close the log file, if any."""
        if self._file_handler is None:
            return

        path = self.log_file
        self._file_handler.close()
        if self._file_logger is not None:
            self._file_logger.removeHandler(self._file_handler)
        self._file_handler = None
        self._file_logger = None
        logger.info(f"Log file saved to: {path}")

    def __enter__(self) -> "ConversionLogger":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
