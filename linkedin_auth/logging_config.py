"""
Logging configuration for Cloud Run and local environments.

Automatically detects Cloud Run environment and configures appropriate logging:
- Cloud Run: google-cloud-logging with trace correlation
- Local/Test: Standard Python logging to stdout with JSON formatting

Error messages can carry raw LinkedIn response bodies, so access tokens,
client secrets and authorization codes are redacted before output.
"""

import json
import logging
import os
import re
from datetime import UTC, datetime


# Attributes every LogRecord has; anything else came in through extra={...}
_RECORD_ATTRS = set(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}

_SENSITIVE_KEYS = ("access_token", "client_secret", "code", "token")

_REDACTIONS = [
    # JSON bodies: "access_token": "..."
    (
        re.compile(r'("(?:access_token|client_secret|token)"\s*:\s*)"[^"]*"', re.IGNORECASE),
        r'\1"[REDACTED]"',
    ),
    # Query strings and form bodies: access_token=...&code=...
    (
        re.compile(r"\b(access_token|client_secret|code)=[^&\s\"']+", re.IGNORECASE),
        r"\1=[REDACTED]",
    ),
    # Authorization headers
    (re.compile(r"(Bearer\s+)[A-Za-z0-9\-._~+/]+=*"), r"\1[REDACTED]"),
]


def redact_sensitive(message: str) -> str:
    """Replace tokens, secrets and authorization codes in a log message."""
    if not message:
        return message
    for pattern, replacement in _REDACTIONS:
        message = pattern.sub(replacement, message)
    return message


class JsonFormatter(logging.Formatter):
    """
    Custom JSON log formatter.

    Ensures that logs in local development are structured JSON,
    similar to what Google Cloud Logging expects.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format the log record as a JSON string.

        Args:
            record: The log record to format.

        Returns:
            A JSON string representing the log record.
        """
        log_object = {
            "timestamp": datetime.now(UTC).isoformat(),
            "severity": record.levelname,
            "name": record.name,
            "message": redact_sensitive(record.getMessage()),
        }

        # Fields passed with extra={...}
        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key.startswith("_"):
                continue
            if key in _SENSITIVE_KEYS:
                value = "[REDACTED]"
            log_object[key] = value

        if record.exc_info:
            log_object["exception"] = redact_sensitive(self.formatException(record.exc_info))

        return json.dumps(log_object, default=str)


def setup_global_logging() -> None:
    """
    Configure global logging based on environment.

    When running in Cloud Run (K_SERVICE env var is set):
    - Uses google-cloud-logging for structured logs with trace correlation.
    - Logs appear in Cloud Logging under the jsonPayload field.

    When running locally or in tests:
    - Uses standard Python logging with a custom JSON formatter.
    - Logs are sent to stdout in a structured JSON format.
    """
    is_cloud_run = os.getenv("K_SERVICE") is not None

    if is_cloud_run:
        try:
            import google.cloud.logging

            client = google.cloud.logging.Client()
            client.setup_logging()
            logging.info("Cloud Logging initialized for Cloud Run.")
        except Exception as e:
            # Fallback for Cloud Logging import/initialization errors
            logging.basicConfig(
                level=logging.INFO,
                format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            )
            logging.warning(f"Cloud Logging setup failed, using basic config: {e}")
    else:
        # Local development setup
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())

        root_logger = logging.getLogger()
        root_logger.addHandler(handler)
        root_logger.setLevel(
            os.getenv("LOG_LEVEL", "INFO").upper()
        )

        # Remove default handlers to avoid duplicate logs
        if len(root_logger.handlers) > 1:
            for h in root_logger.handlers[1:]:
                root_logger.removeHandler(h)
