import json
import logging
import os
import sys

DEFAULT_BACKGROUND_LOG = "/tmp/ariadne-sync.log"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Chatty HTTP stacks: requests/urllib3 for Notion, httpx under mcp
QUIET_LOGGERS = ("urllib3", "requests", "httpx", "httpcore")


class JsonFormatter(logging.Formatter):
    """One JSON object per line: time, level, logger, message[, exception]."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _formatter(debug_format: str, with_name: bool) -> logging.Formatter:
    if debug_format == "json":
        return JsonFormatter(datefmt=DATE_FORMAT)
    name = " %(name)s" if with_name else ""
    return logging.Formatter(
        f"[%(asctime)s] [%(levelname)s]{name} %(message)s", datefmt=DATE_FORMAT
    )


def _file_handler(path: str, debug_format: str) -> logging.Handler:
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setFormatter(_formatter(debug_format, with_name=True))
    return handler


def _resolve_level(debug: bool) -> int:
    if debug:
        return logging.DEBUG
    name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def setup_logging(
    mode: str = "cli",
    debug: bool = False,
    log_file: str | None = None,
    debug_format: str = "text",
) -> None:
    """
    Configure root logging for a sync run.

    Args:
        mode: "cli" logs to stderr (plus *log_file* when given).
            "background" logs to a file only; used for scheduled runs and
            by the MCP server, whose stdout carries JSON-RPC.
        debug: Force DEBUG regardless of LOG_LEVEL.
        log_file: Log file path; in background mode it overrides LOG_FILE.
        debug_format: "text" or "json".

    Environment variables:
        LOG_LEVEL: DEBUG, INFO, WARNING or ERROR (default INFO).
        LOG_FILE: Background log file (default /tmp/ariadne-sync.log).
    """
    level = _resolve_level(debug)

    if mode == "background":
        target = log_file or os.getenv("LOG_FILE", DEFAULT_BACKGROUND_LOG)
        handlers = [_file_handler(target, debug_format)]
    else:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(_formatter(debug_format, with_name=False))
        handlers = [console]
        if log_file:
            handlers.append(_file_handler(log_file, debug_format))

    logging.basicConfig(level=level, handlers=handlers, force=True)

    if level > logging.DEBUG:
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
