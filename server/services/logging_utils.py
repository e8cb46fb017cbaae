# services/logging_utils.py
import logging
import logging.config
import os
import re
from pathlib import Path


class RedactingFilter(logging.Filter):
    """
    A logging.Filter that masks ICE credentials and DTLS fingerprints.

    Handshake payloads are only logged at DEBUG, but when they are, the SDP
    carries secrets that must not end up in log files.
    """

    SENSITIVE_PATTERNS = [
        re.compile(r'(a=ice-ufrag:)[^\s"\\]+'),
        re.compile(r'(a=ice-pwd:)[^\s"\\]+'),
        re.compile(r'(a=fingerprint:\S+ )[0-9A-Fa-f:]+'),
        re.compile(r'(usernameFragment["\']?\s*[:=]\s*["\']?)[^\s"\',}]+'),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        for pat in self.SENSITIVE_PATTERNS:
            msg = pat.sub(r"\1***", msg)

        # Formatters see the redacted text; args are already inlined.
        record.msg = msg
        record.args = ()
        return True


def setup_logging(
        level: str = None,
        logs_dir: str = "logs",
        log_file: str = "relay.log") -> None:
    """
    Configure application-wide logging with console and rotating file handlers.

    Args:
        level (str, optional): Logging level (e.g., "INFO", "DEBUG").
            Defaults to the LOG_LEVEL environment variable or "INFO".
        logs_dir (str, optional): Directory for log files, created if missing.
            An empty value disables file logging. Defaults to "logs".
        log_file (str, optional): Filename for the main log file within logs_dir.
            Defaults to "relay.log".

    Raises:
        OSError: If the logs_dir directory cannot be created.
    """
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()

    handlers = {
        "console": {"class": "logging.StreamHandler",
                    "formatter": "default",
                    "filters": ["redact"],
                    "level": level},
    }
    if logs_dir:
        Path(logs_dir).mkdir(parents=True, exist_ok=True)
        handlers["file"] = {"class": "logging.handlers.TimedRotatingFileHandler",
                            "formatter": "default",
                            "filters": ["redact"],
                            "filename": str(Path(logs_dir) / log_file),
                            "when": "midnight",
                            "backupCount": 14,
                            "encoding": "utf-8",
                            "level": level}
        handlers["errors"] = {"class": "logging.handlers.RotatingFileHandler",
                              "formatter": "default",
                              "filters": ["redact"],
                              "filename": str(Path(logs_dir) / "relay-error.log"),
                              "maxBytes": 10 * 1024 * 1024,    # 10 MiB
                              "backupCount": 5,
                              "encoding": "utf-8",
                              "level": "ERROR"}

    LOGGING_CONFIG = {
        "version": 1,
        "disable_existing_loggers": False,          # keep websockets' own logs
        "filters": {
            "redact": {
                "()": RedactingFilter,
            },
        },
        "formatters": {
            "default": {
                "format": "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
                "datefmt": "%d-%m-%Y %H:%M:%S",
            },
        },
        "handlers": handlers,
        "root": {"level": level,
                 "handlers": list(handlers)},
    }

    logging.config.dictConfig(LOGGING_CONFIG)
