"""Logging setup - text for local runs, JSON for log shippers."""
import json
import logging
from datetime import datetime, timezone


class JSONFormatter(logging.Formatter):
    """Render each record as a single JSON line."""

    EXTRA_FIELDS = ("user_id", "record_id", "error_kind", "operation", "path")

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in self.EXTRA_FIELDS:
            value = record.__dict__.get(key)
            if value is not None:
                log[key] = value
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False)


def setup_logging(level: str = "INFO", fmt: str = "text") -> None:
    """
    Configure the root logger.

    Safe to call more than once; the previous handler installed here is
    replaced rather than duplicated.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_time_tracking", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler._time_tracking = True
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
