import logging


class ExtraFieldsFormatter(logging.Formatter):
    """Appends fields passed through `extra` to the rendered log line."""

    _STANDARD_ATTRS = {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "thread",
        "threadName",
        "taskName",
        "extra_fields",
    }

    # Values that let a reader forge or replay a PayTR callback.
    _REDACTED_FIELDS = {"hash", "signature", "merchant_key", "merchant_salt", "paytr_token"}

    def format(self, record: logging.LogRecord) -> str:
        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in self._STANDARD_ATTRS and not key.startswith("_")
        }
        record.extra_fields = ""
        if extras:
            formatted = " ".join(
                f"{key}=***" if key in self._REDACTED_FIELDS else f"{key}={value}"
                for key, value in sorted(extras.items())
            )
            record.extra_fields = f" | {formatted}"
        return super().format(record)


class AccessNoiseFilter(logging.Filter):
    """Drops scanner noise from the uvicorn access log.

    The service only answers /, /health and /paytr-callback; these markers
    are the probes that show up most often against such a host.
    """

    _SUSPICIOUS_PATH_MARKERS = (
        "/.env",
        "/.git",
        "wp-login.php",
        "/xmlrpc.php",
        "/cgi-bin/",
    )

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage().lower()
        return not any(marker in message for marker in self._SUSPICIOUS_PATH_MARKERS)


def setup_logging(level: str) -> None:
    formatter = ExtraFieldsFormatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s%(extra_fields)s"
    )
    logging.basicConfig(level=level.upper(), force=True)
    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        handler.setFormatter(formatter)

    access_logger = logging.getLogger("uvicorn.access")
    has_filter = any(isinstance(existing_filter, AccessNoiseFilter) for existing_filter in access_logger.filters)
    if not has_filter:
        access_logger.addFilter(AccessNoiseFilter())
