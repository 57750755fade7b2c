"""Logging helpers for GitHub Org Analyser."""

import atexit
import contextlib
import json
import logging
import os
import re
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from github_org_analyser.core.config import LogConfig
from github_org_analyser.core.constants import DEFAULT_LOG

_LOG_RECORD_RESERVED_FIELDS = set(logging.makeLogRecord({}).__dict__.keys()) | {"message", "asctime", "extra_fields"}
_REDACTION_FLAG_ATTR = "_goa_redacted"
_REDACTED_VALUE = "[REDACTED]"
_SENSITIVE_FIELD_NAMES = {
    "token",
    "access_token",
    "github_token",
    "bearer_token",
    "authorization",
    "auth_header",
    "password",
    "secret",
    "client_secret",
}
_SENSITIVE_KEY_REGEX = r"github[_-]?token|access[_-]?token|bearer[_-]?token|client[_-]?secret|password|secret|token"
_VALUE_REGEX = r"""(?:"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*'|[^,\s;}\]]+)"""

_AUTHORIZATION_PATTERN = re.compile(
    r"""(?ix)
    (?P<key>["']?authorization["']?)
    (?P<separator>\s*[:=]\s*)
    (?P<quote>["']?)
    (?:(?P<scheme>bearer|token|basic)\s+)?
    (?P<credential>[A-Za-z0-9._~+/=-]+)
    (?P=quote)
    """
)
_BEARER_PATTERN = re.compile(r"(?i)\b(bearer)\s+([A-Za-z0-9._~+/=-]+)")
# Personal access, OAuth, app installation and fine-grained token prefixes.
_GITHUB_TOKEN_PATTERN = re.compile(r"\b(?:gh[pousr]_[A-Za-z0-9]{20,}|github_pat_[A-Za-z0-9_]{20,})\b")
_KEY_VALUE_PATTERN = re.compile(
    rf"""(?ix)
    (?P<key>["']?(?<![A-Za-z0-9_])(?:{_SENSITIVE_KEY_REGEX})(?![A-Za-z0-9_])["']?)
    (?P<separator>\s*[:=]\s*)
    (?P<value>{_VALUE_REGEX})
    """
)


def _normalize_field_name(name: str) -> str:
    separated = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name.strip())
    return re.sub(r"[^a-z0-9]+", "_", separated.lower()).strip("_")


def _safe_record_message(record: logging.LogRecord) -> str:
    try:
        return record.getMessage()
    except Exception:
        return f"{record.msg!s} [log-message-format-error]"


def _is_sensitive_field(name: str) -> bool:
    normalized = _normalize_field_name(name)
    if normalized in _SENSITIVE_FIELD_NAMES:
        return True
    parts = normalized.split("_")
    return "token" in parts or "secret" in parts or "authorization" in parts or "password" in parts


def _redact_authorization(match: re.Match[str]) -> str:
    quote = match.group("quote")
    scheme = match.group("scheme")
    value = f"{scheme} {_REDACTED_VALUE}" if scheme else _REDACTED_VALUE
    return f"{match.group('key')}{match.group('separator')}{quote}{value}{quote}"


def _redact_key_value(match: re.Match[str]) -> str:
    value = match.group("value")
    if len(value) >= 2 and value[0] in {"'", '"'} and value[-1] == value[0]:
        redacted = f"{value[0]}{_REDACTED_VALUE}{value[0]}"
    else:
        redacted = _REDACTED_VALUE
    return f"{match.group('key')}{match.group('separator')}{redacted}"


def redact_message(message: str) -> str:
    """Mask credentials that may appear in free-form log text."""
    redacted = _AUTHORIZATION_PATTERN.sub(_redact_authorization, message)
    redacted = _KEY_VALUE_PATTERN.sub(_redact_key_value, redacted)
    redacted = _BEARER_PATTERN.sub(lambda m: f"{m.group(1)} {_REDACTED_VALUE}", redacted)
    return _GITHUB_TOKEN_PATTERN.sub(_REDACTED_VALUE, redacted)


def _redact_value(value: object) -> object:
    if isinstance(value, dict):
        return {
            key: _REDACTED_VALUE if _is_sensitive_field(str(key)) else _redact_value(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(_redact_value(item) for item in value)
    if isinstance(value, str):
        return redact_message(value)
    return value


class SensitiveDataFilter(logging.Filter):
    """Best-effort redaction of tokens and authorization headers in log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.__dict__.get(_REDACTION_FLAG_ATTR):
            return True

        record.msg = redact_message(_safe_record_message(record))
        record.args = ()

        for key, value in list(record.__dict__.items()):
            if key in _LOG_RECORD_RESERVED_FIELDS or key.startswith("_"):
                continue
            if _is_sensitive_field(key):
                record.__dict__[key] = _REDACTED_VALUE
                continue
            with contextlib.suppress(Exception):
                record.__dict__[key] = _redact_value(value)
        record.__dict__[_REDACTION_FLAG_ATTR] = True
        return True


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging output.

    Each log record is a single JSON object on one line.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = _safe_record_message(record)
        if not record.__dict__.get(_REDACTION_FLAG_ATTR):
            message = redact_message(message)

        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        # Custom attributes set through `extra` or with_log_context()
        for key, value in record.__dict__.items():
            if key in _LOG_RECORD_RESERVED_FIELDS or key.startswith("_"):
                continue
            log_entry.setdefault(key, _REDACTED_VALUE if _is_sensitive_field(key) else _redact_value(value))

        return json.dumps(log_entry, default=str)


class ContextLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges contextual fields into record extras."""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        extra = kwargs.get("extra")
        merged_extra = dict(self.extra)
        if isinstance(extra, dict):
            merged_extra.update(extra)
        kwargs["extra"] = merged_extra
        return msg, kwargs


def with_log_context(
    logger: logging.Logger | logging.LoggerAdapter | object, **context: object
) -> logging.Logger | logging.LoggerAdapter | object:
    """Return a logger enriched with persistent contextual fields (org, report_type, ...)."""
    if not isinstance(logger, (logging.Logger, logging.LoggerAdapter)):
        # Mocks passed by tests are returned untouched.
        return logger

    base_logger = logger
    existing_context: dict[str, object] = {}
    while isinstance(base_logger, logging.LoggerAdapter):
        existing_context = {**dict(getattr(base_logger, "extra", None) or {}), **existing_context}
        base_logger = base_logger.logger

    existing_context.update({k: v for k, v in context.items() if v is not None})
    return ContextLoggerAdapter(base_logger, existing_context)


_atexit_registered = False


def setup_logging(
    org: str | None = None,
    log_level: str | None = None,
    log_format: str = "text",
    log_dir: str | Path | None = "logs",
    log_config: LogConfig | None = None,
) -> logging.Logger:
    """Setup logging to both file and console.

    Args:
        org: Organization login used in the log file name
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format - "text" (default) or "json" for structured logging
        log_dir: Directory for rotating log files, or None for console only
        log_config: File rotation settings and fallback level (default: DEFAULT_LOG)

    Returns:
        Configured package logger

    Priority: 1) Passed parameter, 2) Environment variable LOG_LEVEL, 3) log_config.level (INFO)
    """
    global _atexit_registered
    config = log_config or DEFAULT_LOG

    if not _atexit_registered:
        atexit.register(logging.shutdown)
        _atexit_registered = True

    log_path: Path | None = Path(log_dir) if log_dir is not None else None
    if log_path is not None:
        try:
            log_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            print(f"Warning: Cannot create logs directory: {e}. Logging to console only.", file=sys.stderr)
            log_path = None

    log_file = None
    if log_path is not None:
        timestamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
        suffix = f"_{re.sub(r'[^A-Za-z0-9_.-]', '_', org)}" if org else ""
        log_file = log_path / f"org_analyser{suffix}_{timestamp}.log"

    if log_level is None:
        log_level = os.environ.get("LOG_LEVEL", config.level)
    if log_level.upper() not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        print(f"Warning: Invalid log level '{log_level}', using INFO", file=sys.stderr)
        log_level = "INFO"
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    for handler in logging.root.handlers[:]:
        handler.close()
        logging.root.removeHandler(handler)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        handlers.append(
            RotatingFileHandler(log_file, maxBytes=config.file_max_bytes, backupCount=config.file_backup_count)
        )

    if log_format.lower() == "json":
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(numeric_level)
        handler.addFilter(SensitiveDataFilter())
        logging.root.addHandler(handler)
    logging.root.setLevel(numeric_level)

    logger = logging.getLogger("github_org_analyser")
    logger.propagate = True
    logger.setLevel(logging.NOTSET)

    if log_file is not None:
        logger.info(f"Logging initialized. Log file: {log_file}")
    else:
        logger.info("Logging initialized. Console output only.")
    return logger
