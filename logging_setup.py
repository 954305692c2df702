import logging
import sys
from pathlib import Path
from typing import Union

# Third-party loggers that only reach the console at WARNING+
_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "passlib", "httpx")


class _ConsoleNoiseFilter(logging.Filter):
    """Keep our own logs on the console; let third-party chatter through only when it matters."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith(_NOISY_LOGGERS):
            return record.levelno >= logging.WARNING
        if record.name == "py.warnings":
            return record.levelno >= logging.ERROR
        return True


def setup_logging(
    *,
    log_dir: Union[str, Path] = ".local/productivity",
    console_level: Union[int, str] = logging.INFO,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Configure the root logger with a filtered console handler and a file
    handler that keeps everything.

    Call this once, before the first log line.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "productivity.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    logging.captureWarnings(True)
