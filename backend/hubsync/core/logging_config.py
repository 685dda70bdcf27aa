"""
Logging setup.

Console-only logging. Structured context passed through ``extra={...}``
is appended to the line as JSON so sync failures can be traced back to
the tenant, account and operation that produced them.
"""

import json
import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = set(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}


class ContextFormatter(logging.Formatter):
    """Formatter that prints ``extra`` context as a JSON suffix."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if context:
            line = f"{line} {json.dumps(context, default=str, sort_keys=True)}"
        return line


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Configure the root logger with a single stdout handler."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(root.handlers):
        if getattr(handler, "_hubsync", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ContextFormatter(LOG_FORMAT))
    handler._hubsync = True
    root.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return root
