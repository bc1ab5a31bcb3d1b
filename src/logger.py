"""Structured logging configuration using loguru.

Two sinks are installed by ``configure_logging``:
- a colorized console sink on stderr; lines logged inside a run carry the
  run id so interleaved API requests stay readable
- a rotated JSON-lines file sink with one object per record

Records logged inside ``run_context`` carry the run's identity (id, start
instant and requested article count). The JSON sink lifts those fields into
a ``run`` object; every other keyword passed to a log call lands in
``context``.
"""

import json
import sys
import uuid
from contextlib import AbstractContextManager
from datetime import datetime
from pathlib import Path
from typing import Any

from loguru import logger

from config.settings import GlobalConfig, get_config
from src.exceptions import LoggingInitializationError

RUN_FIELDS = ("run_id", "run_started_at", "target_count")

# Keys bound by this module rather than passed by callers.
_INTERNAL_FIELDS = frozenset({"serialized", "module", *RUN_FIELDS})

_CONSOLE_PREFIX = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[module]}</cyan>:<cyan>{line}</cyan> | "
)


def _console_format(record: dict[str, Any]) -> str:
    record["extra"].setdefault("module", record["name"])
    run = "<magenta>run={extra[run_id]}</magenta> | " if "run_id" in record["extra"] else ""
    return _CONSOLE_PREFIX + run + "<level>{message}</level>\n{exception}"


def _json_serializer(record: dict[str, Any]) -> str:
    """Render a loguru record as one JSON line.

    Output keys: timestamp, level, message, module, function, line, plus
    ``run`` when logged inside a run, ``context`` for caller keywords and
    ``exception`` when one is attached.
    """
    extra = record["extra"]
    entry: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "module": extra.get("module", record["name"]),
        "function": record["function"],
        "line": record["line"],
    }

    run = {key: extra[key] for key in RUN_FIELDS if key in extra}
    if run:
        entry["run"] = run

    context = {k: v for k, v in extra.items() if k not in _INTERNAL_FIELDS}
    if context:
        entry["context"] = context

    if record["exception"] is not None:
        exc_type, exc_value, _ = record["exception"]
        entry["exception"] = {
            "type": exc_type.__name__ if exc_type else None,
            "value": str(exc_value) if exc_value else None,
        }

    return json.dumps(entry, default=str) + "\n"


def _attach_serialized(record: dict[str, Any]) -> bool:
    record["extra"]["serialized"] = _json_serializer(record)
    return True


def _validate_log_directory(log_dir: Path) -> None:
    """Create ``log_dir`` and prove it is writable before any sink is added."""
    probe = log_dir / ".write_test"
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        probe.write_text("ok")
        probe.unlink()
    except PermissionError as exc:
        raise LoggingInitializationError(
            log_dir=str(log_dir), reason=f"Permission denied: {exc}"
        ) from exc
    except OSError as exc:
        raise LoggingInitializationError(log_dir=str(log_dir), reason=str(exc)) from exc


def configure_logging(config: GlobalConfig | None = None) -> None:
    """Install the console and JSON file sinks.

    Call once at startup (CLI run or API server), before the first run.

    Raises:
        LoggingInitializationError: If the log directory is not writable.
    """
    config = config or get_config()

    logger.remove()
    _validate_log_directory(config.log_dir)

    logger.add(
        sys.stderr,
        format=_console_format,
        level=config.log_level,
        colorize=True,
        backtrace=config.debug,
        diagnose=config.debug,
    )
    logger.add(
        str(config.log_dir / "sortvalidator_{time:YYYY-MM-DD}.json"),
        format="{extra[serialized]}",
        level=config.log_level,
        rotation=config.log_rotation,
        retention=config.log_retention,
        compression="gz",
        filter=_attach_serialized,
    )

    logger.info(
        "Logging initialized",
        app_name=config.app_name,
        environment=config.environment,
        log_level=config.log_level,
        log_dir=str(config.log_dir),
    )


def run_context(started_at: datetime, target_count: int) -> AbstractContextManager[None]:
    """Tag every record logged inside the block with the run's identity.

    Example:
        >>> with run_context(datetime.now(UTC), 100):
        ...     log.info("Run started")
    """
    return logger.contextualize(
        run_id=uuid.uuid4().hex[:8],
        run_started_at=started_at.isoformat(),
        target_count=target_count,
    )


def get_logger(name: str) -> "logger":
    """Return the shared logger bound with the calling module's name."""
    return logger.bind(module=name)
