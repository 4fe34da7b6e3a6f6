"""
Logging setup for the fleet deployer.

Console output for the operator, rotating files for later inspection, and a
separate rollout log that only carries per-service lifecycle lines.
"""
# mypy: ignore-errors

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

ROLLOUT_LOGGER = "fleet_deployer.rollout"

# Record attributes copied into JSON output when present
EXTRA_FIELDS = ("service", "cluster", "version", "task_reference", "operation", "duration_ms")


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                log_obj[field] = getattr(record, field)

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Human-readable formatter for console and file logs."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = False):
        self.use_colors = use_colors
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if self.use_colors and levelname in self.COLORS:
            # Colour a copy so file handlers sharing the record stay plain
            record = logging.makeLogRecord(record.__dict__)
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        return super().format(record)


def setup_logging(
    log_dir: str = "~/.local/log/fleet-deployer",
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    use_json: bool = False,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Configure console and file logging.

    Args:
        log_dir: Directory for log files
        console_level: Console logging level
        file_level: File logging level
        use_json: Use JSON formatting for files
        max_bytes: Max size per log file before rotation
        backup_count: Number of backup files to keep

    Raises:
        PermissionError: If the log directory cannot be created
    """
    log_path = Path(log_dir).expanduser()
    log_path.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, console_level.upper()))
    console_handler.setFormatter(HumanReadableFormatter(use_colors=sys.stderr.isatty()))
    root_logger.addHandler(console_handler)

    file_formatter = StructuredFormatter() if use_json else HumanReadableFormatter()

    main_handler = logging.handlers.RotatingFileHandler(
        log_path / "deployer.log", maxBytes=max_bytes, backupCount=backup_count
    )
    main_handler.setLevel(getattr(logging, file_level.upper()))
    main_handler.setFormatter(file_formatter)
    root_logger.addHandler(main_handler)

    error_handler = logging.handlers.RotatingFileHandler(
        log_path / "error.log", maxBytes=max_bytes, backupCount=backup_count
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(file_formatter)
    root_logger.addHandler(error_handler)

    rollout_logger = logging.getLogger(ROLLOUT_LOGGER)
    rollout_logger.handlers.clear()
    rollout_handler = logging.handlers.RotatingFileHandler(
        log_path / "rollout.log", maxBytes=max_bytes, backupCount=backup_count
    )
    rollout_handler.setFormatter(file_formatter)
    rollout_logger.addHandler(rollout_handler)
    rollout_logger.setLevel(logging.DEBUG)
    rollout_logger.propagate = False

    for noisy in ("botocore", "boto3", "urllib3", "httpx", "httpcore", "s3transfer"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    root_logger.info(
        f"Logging initialized - Console: {console_level}, File: {file_level}, "
        f"Directory: {log_path}, JSON: {use_json}"
    )


def setup_basic_logging(console_level: str = "INFO") -> None:
    """Console-only logging, used when the log directory is not writable."""
    logging.basicConfig(
        level=getattr(logging, console_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


class LogContext:
    """Context manager that attaches fields to every record logged inside it."""

    def __init__(self, logger: logging.Logger, **kwargs):
        self.logger = logger
        self.context = kwargs
        self.old_factory = None

    def __enter__(self):
        old_factory = logging.getLogRecordFactory()
        self.old_factory = old_factory

        def record_factory(*args, **kwargs):
            record = old_factory(*args, **kwargs)
            for key, value in self.context.items():
                setattr(record, key, value)
            return record

        logging.setLogRecordFactory(record_factory)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.old_factory:
            logging.setLogRecordFactory(self.old_factory)


def log_service_operation(
    operation: str,
    service: str,
    details: Optional[Dict[str, Any]] = None,
    level: str = "INFO",
) -> None:
    """
    Log a service rollout lifecycle step to the rollout log.

    Args:
        operation: Step name (register, update, scale_up, converged, failed, ...)
        service: Service name
        details: Additional step details
        level: Log level (INFO, WARNING, ERROR)
    """
    logger = logging.getLogger(ROLLOUT_LOGGER)

    message = f"Service {service}: {operation}"
    extra: Dict[str, Any] = {"service": service, "operation": operation}

    if details:
        message += f" - {json.dumps(details, default=str)}"

    log_method = getattr(logger, level.lower())
    log_method(message, extra=extra)
