import datetime
import logging
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def _now() -> datetime.datetime:
    return datetime.datetime.now()


@dataclass(frozen=True)
class AccessLogEntry:
    client_ip: str
    method: str
    path: str
    status: str
    message: str = ""
    timestamp: datetime.datetime = field(default_factory=_now)

    def to_line(self) -> str:
        return f"[{self.timestamp.strftime(TIMESTAMP_FORMAT)}] {self.client_ip} {self.method} {self.path} {self.status}"


@dataclass(frozen=True)
class ErrorLogEntry:
    message: str
    client_ip: str = ""
    method: str = ""
    path: str = ""
    status: str = ""
    timestamp: datetime.datetime = field(default_factory=_now)

    def to_line(self) -> str:
        return f"[{self.timestamp.strftime(TIMESTAMP_FORMAT)}] ERROR: {self.message}"


def _file_logger(name: str, path: Path) -> logging.Logger:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, mode="a", encoding="utf-8", errors="backslashreplace")
    handler.setFormatter(logging.Formatter("%(message)s"))
    file_logger = logging.getLogger(name)
    for stale in list(file_logger.handlers):
        file_logger.removeHandler(stale)
        stale.close()
    file_logger.setLevel(logging.INFO)
    file_logger.addHandler(handler)
    file_logger.propagate = False
    return file_logger


class LogSinks:
    """Append-only access and error logs shared by every connection handler.

    A path of None disables that log. Writes go through ``logging`` handlers,
    whose per-handler lock keeps concurrent lines from interleaving.
    """

    def __init__(self, access_log_path: Path | None = None, error_log_path: Path | None = None):
        self.access_logger = None
        self.error_logger = None
        suffix = f"{id(self):x}"
        if access_log_path is not None:
            self.access_logger = _file_logger(f"static_httpd.access.{suffix}", Path(access_log_path))
        if error_log_path is not None:
            self.error_logger = _file_logger(f"static_httpd.error.{suffix}", Path(error_log_path))

    @property
    def access_enabled(self) -> bool:
        return self.access_logger is not None

    def access(self, entry: AccessLogEntry) -> None:
        if self.access_logger is None:
            return
        try:
            self.access_logger.info(entry.to_line())
        except Exception as e:
            # never routed to the error log, which may be failing too
            logger.error(f"Error writing access log: {e}")

    def error(self, entry: ErrorLogEntry) -> None:
        logger.error(entry.message)
        if self.error_logger is None:
            return
        try:
            self.error_logger.error(entry.to_line())
        except Exception as e:
            logger.error(f"Error writing error log: {e}")

    def close(self) -> None:
        for file_logger in (self.access_logger, self.error_logger):
            if file_logger is None:
                continue
            for handler in list(file_logger.handlers):
                file_logger.removeHandler(handler)
                handler.close()
