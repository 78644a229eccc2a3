import sys
from typing import Literal, Optional
from loguru import logger

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Every component logger is bound as "api_converse.<component>"
BASE_LOGGER_NAMESPACE = "api_converse"

CONSOLE_FORMAT = "<level>{level: <8}</level> | <cyan>{extra[module]}</cyan> | {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[module]} | {message}"

_handler_ids: list[int] = []


def get_logger(name: str) -> "logger":
    """
    Returns a loguru logger bound to one component of the app.

    Example: get_logger("DialogueEngine") logs with module="api_converse.DialogueEngine"
    """
    return logger.bind(module=f"{BASE_LOGGER_NAMESPACE}.{name}")


def is_audit_record(record) -> bool:
    """Audit entries go only to the audit sink, never to the console."""
    return record["extra"].get("audit") is True


def _app_record(record) -> bool:
    return not is_audit_record(record)


def _with_module(record) -> bool:
    record["extra"].setdefault("module", BASE_LOGGER_NAMESPACE)
    return _app_record(record)


def configure_logging(
    level: LogLevel = "INFO",
    log_file: Optional[str] = None,
    force: bool = False,
) -> None:
    """
    Install the console handler (and optionally a plain-text file handler).

    Called once by the CLI entry point. Later calls are ignored unless
    force=True, which replaces the handlers this function installed.

    Args:
        level: Minimum level for every handler.
        log_file: Optional path of an extra log file, rotated at 10 MB.
        force: Reconfigure even if logging was already set up.
    """
    if _handler_ids and not force:
        return

    if not _handler_ids:
        # Drop loguru's default stderr handler the first time through
        logger.remove()
    for handler_id in _handler_ids:
        logger.remove(handler_id)
    _handler_ids.clear()

    _handler_ids.append(logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=level,
        colorize=True,
        filter=_with_module,
    ))

    if log_file:
        _handler_ids.append(logger.add(
            log_file,
            format=FILE_FORMAT,
            level=level,
            rotation="10 MB",
            filter=_with_module,
        ))
