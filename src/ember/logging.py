"""Diagnostics logging for ember.

Responses go to stdout; diagnostics go to stderr, so piping ``ember ask`` into
another program never picks up log lines. ``configure_logging()`` is called once
per command, after the configuration is loaded.

Levels used across the package:
- DEBUG: request building, stream handling, directive file reads
- INFO: completed exchanges, retries, saved responses
- WARNING: skipped stream chunks, exhausted retries, missing optional config
- ERROR: backend failures, log write failures, missing diff program

Events are logged as short snake_case names with details in ``extra=``, e.g.
``logger.info("exchange_complete", extra={"tokens": 150})``. When the
``log_diagnostics`` setting is on, the same events are appended as JSON lines
to ``$EMBER_HOME/logs/YYYY-MM-DD.jsonl`` with API keys masked.
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, TextIO

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
DEFAULT_LEVEL = "WARNING"
DEFAULT_LOG_RETENTION_DAYS = 7

# Each pattern's first group (if any) is the secret part of the match
DEFAULT_REDACT_PATTERNS: tuple[str, ...] = (
    r"\b(sk-[A-Za-z0-9_-]{20,})\b",
    r"\b[A-Z0-9_]+(?:KEY|TOKEN|SECRET|PASSWORD|PASSWD)\s*[=:]\s*([^\s\"']{8,})",
    r"\bBearer\s+([A-Za-z0-9._\-+=]{20,})\b",
)

# Attributes every LogRecord has; anything else came in through ``extra=``
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "component"}

# Third-party loggers that would otherwise echo every HTTP request
NOISY_LOGGERS = ("httpx", "httpcore", "anthropic", "openai")


def _mask(secret: str) -> str:
    if len(secret) < 12:
        return "***"
    return f"{secret[:4]}...{secret[-4:]}"


@dataclass
class SecretRedactor:
    """Masks API keys and tokens, keeping the first and last four characters."""

    patterns: list[re.Pattern[str]] = field(default_factory=list)
    enabled: bool = True

    def __post_init__(self) -> None:
        if not self.patterns:
            self.patterns = [
                re.compile(p, re.IGNORECASE) for p in DEFAULT_REDACT_PATTERNS
            ]

    def redact(self, text: str) -> str:
        if not self.enabled or not text:
            return text
        for pattern in self.patterns:
            text = pattern.sub(self._replace, text)
        return text

    @staticmethod
    def _replace(match: re.Match[str]) -> str:
        whole = match.group(0)
        secret = match.group(1) if match.lastindex else whole
        if "..." in secret:
            # Already masked
            return whole
        start, end = match.span(1) if match.lastindex else match.span()
        offset = match.start()
        return whole[: start - offset] + _mask(secret) + whole[end - offset :]


_redactor = SecretRedactor()


def prune_old_logs(
    logs_dir: Path, retention_days: int = DEFAULT_LOG_RETENTION_DAYS
) -> int:
    """Delete ``*.jsonl`` files not modified within ``retention_days``.

    Returns:
        Number of files deleted.
    """
    if not logs_dir.is_dir():
        return 0

    cutoff = (datetime.now(UTC) - timedelta(days=retention_days)).timestamp()
    deleted = 0
    for path in logs_dir.glob("*.jsonl"):
        try:
            if path.is_file() and path.stat().st_mtime < cutoff:
                path.unlink()
                deleted += 1
        except OSError:
            continue
    return deleted


def _component(name: str) -> str:
    """``ember.core.session`` -> ``core``; third-party names keep their root."""
    parts = name.split(".")
    if len(parts) >= 2 and parts[0] == "ember":
        return parts[1]
    return parts[0]


def _record_extra(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}


class JSONLHandler(logging.Handler):
    """Appends one redacted JSON object per record to a per-day file.

    Files older than the retention period are pruned whenever a new day's file
    is opened.
    """

    def __init__(
        self, logs_dir: Path, retention_days: int = DEFAULT_LOG_RETENTION_DAYS
    ):
        super().__init__()
        logs_dir.mkdir(parents=True, exist_ok=True)
        self._logs_dir = logs_dir
        self._retention_days = retention_days
        self._day: str | None = None
        self._stream: TextIO | None = None

    def _stream_for(self, day: str) -> TextIO:
        if self._stream is None or self._day != day:
            if self._stream is not None:
                self._stream.close()
            self._stream = (self._logs_dir / f"{day}.jsonl").open("a", encoding="utf-8")
            self._day = day
            prune_old_logs(self._logs_dir, self._retention_days)
        return self._stream

    def _build_entry(self, record: logging.LogRecord, now: datetime) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "ts": now.isoformat(),
            "level": record.levelname,
            "component": _component(record.name),
            "logger": record.name,
            "message": _redactor.redact(record.getMessage()),
        }
        if record.exc_info:
            formatter = self.formatter or logging.Formatter()
            entry["exception"] = _redactor.redact(
                formatter.formatException(record.exc_info)
            )
        extra = _record_extra(record)
        if extra:
            # Redact the serialized form so nested values are covered too
            entry["extra"] = json.loads(
                _redactor.redact(json.dumps(extra, default=str))
            )
        return entry

    def emit(self, record: logging.LogRecord) -> None:
        try:
            now = datetime.now(UTC)
            stream = self._stream_for(now.strftime("%Y-%m-%d"))
            stream.write(json.dumps(self._build_entry(record, now)) + "\n")
            stream.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None
        super().close()


class ComponentFormatter(logging.Formatter):
    """Adds ``%(component)s`` (see ``_component``) to the format fields."""

    def format(self, record: logging.LogRecord) -> str:
        record.component = _component(record.name)
        return super().format(record)


def _resolve_level(level: str | None) -> str:
    if level is None:
        level = os.environ.get("EMBER_LOG_LEVEL", DEFAULT_LEVEL)
    level = level.upper()
    return level if level in LEVELS else DEFAULT_LEVEL


def configure_logging(
    level: str | None = None,
    log_dir: Path | None = None,
) -> None:
    """Install the stderr handler and, with ``log_dir``, the JSONL file handler.

    Args:
        level: DEBUG, INFO, WARNING or ERROR. Defaults to ``EMBER_LOG_LEVEL``,
            then WARNING. Unknown names fall back to WARNING.
        log_dir: Directory for daily JSONL diagnostics files.
    """
    from rich.console import Console
    from rich.logging import RichHandler

    log_level = getattr(logging, _resolve_level(level))

    console_handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=False,
        show_path=False,
        markup=False,
    )
    console_handler.setFormatter(ComponentFormatter("%(component)s | %(message)s"))
    handlers: list[logging.Handler] = [console_handler]

    if log_dir is not None:
        file_handler = JSONLHandler(log_dir)
        file_handler.setLevel(log_level)
        handlers.append(file_handler)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
