"""
Audit trail for executed API requests.

Every request the dialogue engine sends is written as one JSONL line
(conversation, tool, method, url, redacted arguments, status or error)
through a dedicated loguru sink with rotation.
"""

from typing import Any, Dict, Optional
from datetime import datetime, timezone
import json
import re

from loguru import logger

from src.utils.logger import is_audit_record

from .config import AuditConfig
from ..models import RequestDescription

_SENSITIVE_KEYS = re.compile(
    r"(api[_-]?key|token|password|passwd|secret|credential|auth|bearer)",
    re.IGNORECASE,
)
_REDACTED = "***REDACTED***"


def redact(value: Any) -> Any:
    """Recursively redact sensitive values from dicts and lists of dicts."""
    if isinstance(value, dict):
        return {
            key: _REDACTED if isinstance(key, str) and _SENSITIVE_KEYS.search(key) else redact(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [redact(item) for item in value]
    return value


class AuditLogger:
    """
    Writes one JSONL entry per executed request.

    The sink only accepts records bound with audit=True, and the console
    handlers installed by configure_logging() skip those records.
    """

    def __init__(
        self,
        log_dir: Optional[str] = None,
        config: Optional[AuditConfig] = None,
    ):
        self.config = config or (AuditConfig(log_dir=log_dir) if log_dir else AuditConfig())
        self.log_file = self.config.log_file
        self.log_file.parent.mkdir(parents=True, exist_ok=True)

        self._sink_id = logger.add(
            str(self.log_file),
            format="{message}",  # Raw JSON, no formatting
            rotation=self.config.rotation,
            retention=self.config.retention,
            compression=self.config.compression,
            serialize=False,
            enqueue=True,
            filter=is_audit_record,
        )

    def _base_entry(
        self,
        conversation_id: str,
        tool_name: str,
        request: RequestDescription,
        parameters: Dict[str, Any],
    ) -> Dict[str, Any]:
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": "api_request",
            "conversation_id": conversation_id,
            "tool_name": tool_name,
            "method": request.method,
            "url": request.url,
            "arguments": redact(parameters),
        }

    def log_execution(
        self,
        conversation_id: str,
        tool_name: str,
        request: RequestDescription,
        parameters: Dict[str, Any],
        status: int,
        ok: bool = True,
    ) -> None:
        """Log a request the executor completed, whatever its HTTP status."""
        entry = self._base_entry(conversation_id, tool_name, request, parameters)
        entry["http_status"] = status
        entry["status"] = "success" if ok else "api_error"
        self._write_entry(entry)

    def log_execution_failure(
        self,
        conversation_id: str,
        tool_name: str,
        request: RequestDescription,
        parameters: Dict[str, Any],
        error: str,
    ) -> None:
        """Log a request the executor could not perform."""
        entry = self._base_entry(conversation_id, tool_name, request, parameters)
        entry["status"] = "error"
        entry["error"] = error
        self._write_entry(entry)

    def _write_entry(self, entry: Dict[str, Any]) -> None:
        json_line = json.dumps(entry, separators=(",", ":"), default=str)
        logger.bind(audit=True).info(json_line)

    def flush(self) -> None:
        """Wait until queued entries have reached the file."""
        logger.complete()

    def close(self) -> None:
        """Remove the audit sink from loguru."""
        logger.remove(self._sink_id)
