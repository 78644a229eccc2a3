"""
Where the request audit trail is written and how its file is rotated.
"""

from pathlib import Path
from typing import Optional

from ..settings import ConverseSettings


class AuditConfig:
    """Audit sink location plus loguru rotation, retention and compression."""

    def __init__(
        self,
        log_dir: str = "./logs",
        rotation: str = "10 MB",
        retention: str = "30 days",
        compression: Optional[str] = "gz",
        file_name: str = "requests.jsonl",
    ):
        self.log_dir = log_dir
        self.rotation = rotation
        self.retention = retention
        self.compression = compression
        self.file_name = file_name

    @property
    def log_file(self) -> Path:
        return Path(self.log_dir) / self.file_name

    @classmethod
    def from_settings(cls, settings: ConverseSettings) -> Optional["AuditConfig"]:
        """None when auditing is off (no audit_log_dir configured)."""
        if not settings.audit_log_dir:
            return None
        return cls(log_dir=settings.audit_log_dir)

    def __repr__(self) -> str:
        return (
            f"AuditConfig(log_file={str(self.log_file)!r}, rotation={self.rotation!r}, "
            f"retention={self.retention!r}, compression={self.compression!r})"
        )
