"""
Logger Utility
--------------
Single "claim_risk" logger shared by the engine, the generator and the CLI.

- Console: colour in DEBUG mode, JSON lines otherwise
- File: rotating JSON log when LOG_FILE is set
- CloudWatch: buffered JSON events when AWS credentials are present
- `log_with_context`: start / finish / failure lines tagged with the run_id
"""

import logging
import json
import sys
import os
import time
from datetime import datetime, timezone
from functools import wraps
from logging.handlers import RotatingFileHandler
from typing import List, Optional

import boto3
from botocore.exceptions import ClientError, NoCredentialsError

from claim_risk.config import config

CONTEXT_FIELDS = ("run_id", "entity_id", "table", "batch_index")
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 5

# =========================================================
# 🧱 Global Logger Setup
# =========================================================
logger = logging.getLogger("claim_risk")
logger.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))

if logger.hasHandlers():
    logger.handlers.clear()


# =========================================================
# 🧩 Formatters
# =========================================================
class JSONFormatter(logging.Formatter):
    """One JSON object per record; context fields are added only when set."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ColoredFormatter(logging.Formatter):
    """Colour-coded console output for local runs."""
    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        msg = super().format(record)
        run_id = getattr(record, "run_id", None)
        if run_id:
            msg = f"{msg} [run={run_id}]"
        return f"{self.COLORS.get(record.levelname, '')}{msg}{self.RESET}"


# =========================================================
# 🖥️ Console + 📁 File Handlers
# =========================================================
def build_console_handler(debug: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.DEBUG if debug else logging.INFO)
    handler.setFormatter(
        ColoredFormatter("%(asctime)s - %(levelname)s - %(message)s") if debug else JSONFormatter()
    )
    return handler


def build_file_handler(path: str) -> logging.Handler:
    handler = RotatingFileHandler(path, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding="utf-8")
    handler.setLevel(logging.INFO)
    handler.setFormatter(JSONFormatter())
    return handler


logger.addHandler(build_console_handler(config.DEBUG))

if config.LOG_FILE:
    logger.addHandler(build_file_handler(config.LOG_FILE))
    logger.info(f"[LOG] 📁 File logging active: {config.LOG_FILE}")


# =========================================================
# ☁️ CloudWatch Handler (AWS Integration)
# =========================================================
class CloudWatchHandler(logging.Handler):
    """
    Ships JSON records to a CloudWatch log stream.

    Records are buffered and sent with one put_log_events call per
    `buffer_size` records (a scoring run logs one line per committed batch),
    plus a final flush on close.
    """

    def __init__(self, log_group: str, log_stream: str, buffer_size: int = 25, client=None):
        super().__init__()
        self.log_group = log_group
        self.log_stream = log_stream
        self.buffer_size = buffer_size
        self.buffer: List[dict] = []
        self.setFormatter(JSONFormatter())
        self.client = client if client is not None else self._init_client()

    def _init_client(self):
        try:
            client = boto3.client("logs", region_name=config.AWS_REGION)
            for call, kwargs in (
                (client.create_log_group, {"logGroupName": self.log_group}),
                (client.create_log_stream, {"logGroupName": self.log_group, "logStreamName": self.log_stream}),
            ):
                try:
                    call(**kwargs)
                except client.exceptions.ResourceAlreadyExistsException:
                    pass
            logger.info(f"[LOG] ☁️ CloudWatch logging enabled: {self.log_group}/{self.log_stream}")
            return client
        except NoCredentialsError:
            logger.warning("[LOG] ⚠️ AWS credentials not found, CloudWatch disabled.")
            return None
        except ClientError as e:
            logger.error(f"[LOG] ❌ CloudWatch init error: {e}")
            return None

    def emit(self, record: logging.LogRecord):
        if not self.client:
            return
        self.buffer.append({"timestamp": int(record.created * 1000), "message": self.format(record)})
        if len(self.buffer) >= self.buffer_size:
            self.flush()

    def flush(self):
        if not self.client or not self.buffer:
            return
        events, self.buffer = self.buffer, []
        try:
            self.client.put_log_events(
                logGroupName=self.log_group,
                logStreamName=self.log_stream,
                logEvents=sorted(events, key=lambda e: e["timestamp"]),
            )
        except ClientError:
            # dropped events are reported through logging's own error hook
            self.handleError(logging.makeLogRecord({"msg": f"CloudWatch dropped {len(events)} events"}))

    def close(self):
        self.flush()
        super().close()


def cloudwatch_stream_name(now: Optional[datetime] = None) -> str:
    return f"scoring-runs/{(now or datetime.now(timezone.utc)):%Y-%m-%d}"


if os.getenv("AWS_ACCESS_KEY_ID") and os.getenv("AWS_SECRET_ACCESS_KEY"):
    cw_handler = CloudWatchHandler(config.CLOUDWATCH_LOG_GROUP, cloudwatch_stream_name())
    cw_handler.setLevel(logging.INFO)
    logger.addHandler(cw_handler)


# =========================================================
# 🧩 Run-Context Logging Decorator
# =========================================================
def log_with_context(level: str = "info"):
    """
    Log start, finish (with elapsed seconds) and failure of a run-level
    function, tagging every line with the `run_id` keyword argument.

    Usage:
        @log_with_context("info")
        def run_scoring_pass(db, ..., run_id=None): ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            run_id = kwargs.get("run_id")
            log = getattr(logger, level, logger.info)
            log(f"[RUN] ▶️ {func.__name__} started", extra={"run_id": run_id})
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"[RUN] ❌ {func.__name__} failed after {time.perf_counter() - started:.2f}s: {e}",
                    extra={"run_id": run_id},
                )
                raise
            log(f"[RUN] ✅ {func.__name__} finished in {time.perf_counter() - started:.2f}s", extra={"run_id": run_id})
            return result
        return wrapper
    return decorator
