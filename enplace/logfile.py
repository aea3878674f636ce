"""A capped, append-only log file with a logfmt-style logger."""

from __future__ import annotations

import json
import logging
import os
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, List, TextIO, Tuple

_LEVEL_NAMES = {"WARNING": "WARN", "CRITICAL": "ERROR"}


def _quote(value: str) -> str:
    if value and all(ch.isprintable() and ch not in ' ="\\' for ch in value):
        return value
    return json.dumps(value, ensure_ascii=False)


class _LogfmtFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).astimezone()
        level = _LEVEL_NAMES.get(record.levelname, record.levelname)
        text = (
            f"time={stamp.isoformat(timespec='milliseconds')} "
            f"level={level} msg={_quote(record.getMessage())}"
        )
        if record.exc_info:
            text += " error=" + _quote(self.formatException(record.exc_info))
        return text


def open_log(log_path: str | os.PathLike, max_lines: int) -> Tuple[logging.Logger, TextIO]:
    """Open the log file for appending, trimmed to its last ``max_lines`` lines.

    Returns the logger and the open file; the caller closes the file.
    """
    path = Path(log_path)
    path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    _trim_file(path, max_lines)

    fd = os.open(path, os.O_CREAT | os.O_WRONLY | os.O_APPEND, 0o600)
    stream = os.fdopen(fd, "a", encoding="utf-8")

    handler = logging.StreamHandler(stream)
    handler.setFormatter(_LogfmtFormatter())
    logger = logging.Logger(f"enplace.{path}", level=logging.DEBUG)
    logger.addHandler(handler)
    logger.propagate = False
    return logger, stream


class MigrationLogger:
    """Printf-style logger for schema migrations, writing through a Logger."""

    def __init__(self, logger: logging.Logger) -> None:
        self.logger = logger

    def printf(self, format: str, *args: Any) -> None:
        self.logger.info(_sprintf(format, args))

    def fatalf(self, format: str, *args: Any) -> None:
        self.logger.error(_sprintf(format, args))


def migration_logger(logger: logging.Logger) -> MigrationLogger:
    """Return a MigrationLogger that writes via ``logger``."""
    return MigrationLogger(logger)


def _trim_file(path: Path, max_lines: int) -> None:
    if max_lines <= 0:
        return
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        return
    lines = _split_lines(data)
    if len(lines) <= max_lines:
        return
    path.write_bytes(b"".join(line + b"\n" for line in lines[-max_lines:]))


def _split_lines(data: bytes) -> List[bytes]:
    if not data:
        return []
    parts = data.split(b"\n")
    if data.endswith(b"\n"):
        parts.pop()
    return [part[:-1] if part.endswith(b"\r") else part for part in parts]


_VERB = re.compile(r"%([-+# 0]*)(\d*)(?:\.(\d+))?([a-zA-Z%])")


def _sprintf(fmt: str, args: Iterable[Any]) -> str:
    remaining = iter(args)

    def replace(match: re.Match) -> str:
        flags, width, precision, verb = match.groups()
        if verb == "%":
            return "%"
        try:
            value = next(remaining)
        except StopIteration:
            return f"%!{verb}(MISSING)"
        return _render(value, flags, width, precision, verb)

    return _VERB.sub(replace, fmt)


def _render(value: Any, flags: str, width: str, precision: str | None, verb: str) -> str:
    prec = f".{precision}" if precision is not None else ""
    is_number = isinstance(value, (int, float)) and not isinstance(value, bool)
    if verb in "dxXo" and isinstance(value, int) and not isinstance(value, bool):
        return f"%{flags}{width}{verb}" % value
    if verb in "feEgG" and is_number:
        return f"%{flags}{width}{prec}{verb}" % value
    if verb == "q":
        text = json.dumps(str(value), ensure_ascii=False)
    elif isinstance(value, bool):
        text = "true" if value else "false"
    else:
        text = str(value)
    align = "-" if "-" in flags else ""
    return f"%{align}{width}{prec}s" % text