"""
Logging setup for wallsearch.

Console output always, a rotating log file and JSON lines on request.
Search context (`request_id`, `query_key`) travels on a ContextVar so it
follows the asyncio task that set it and is stamped onto every record by
`SearchContextFilter`.
"""

import contextvars
import json
import logging
import logging.handlers
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from wallsearch.common.config import Settings, settings as default_settings

CONTEXT_FIELDS = ("request_id", "query_key")

_search_context: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar(
    "wallsearch_log_context", default={}
)

_CONFIGURED_FLAG = "_wallsearch_configured"

# Chatty third-party loggers
_QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")


class SearchContextFilter(logging.Filter):
    """Copies the active search context onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _search_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def _build_formatter(config: Settings) -> logging.Formatter:
    if config.enable_json_logging:
        return JSONFormatter()
    return logging.Formatter(config.log_format, datefmt="%Y-%m-%d %H:%M:%S")


def _file_handler(config: Settings) -> logging.Handler:
    path = Path(config.log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=config.log_max_bytes,
        backupCount=config.log_backup_count,
        encoding="utf-8",
    )


def setup_logging(settings: Optional[Settings] = None, force: bool = False) -> logging.Logger:
    """
    Configure the root logger from settings.

    Runs once per process; later calls are no-ops unless `force` is set.
    """
    config = settings or default_settings
    root = logging.getLogger()
    if getattr(root, _CONFIGURED_FLAG, False) and not force:
        return root

    level_name = config.log_level.upper()
    level = getattr(logging, level_name, logging.INFO)
    formatter = _build_formatter(config)

    handlers = [logging.StreamHandler()]
    if config.enable_file_logging:
        handlers.append(_file_handler(config))

    root.handlers.clear()
    root.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(SearchContextFilter())
        root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    setattr(root, _CONFIGURED_FLAG, True)
    logging.getLogger(__name__).debug(
        f"[logging] level={level_name} "
        f"file={config.log_file if config.enable_file_logging else 'off'} "
        f"json={config.enable_json_logging}"
    )
    return root


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Attach search context to every record logged inside the block.

    Safe across awaits: the context belongs to the current task.
    """

    def __init__(self, logger: Optional[logging.Logger] = None, **fields: Any):
        self.logger = logger
        self.fields = fields
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> "LogContext":
        merged = {**_search_context.get(), **self.fields}
        self._token = _search_context.set(merged)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _search_context.reset(self._token)
            self._token = None


def current_context() -> Dict[str, Any]:
    """The search context active in this task."""
    return dict(_search_context.get())
