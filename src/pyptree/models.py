"""Data models for pyptree."""

from dataclasses import dataclass

UNKNOWN_NAME = "Unknown"


@dataclass(slots=True, frozen=True)
class ProcessMetrics:
    """Extended per-process metrics, captured alongside the record."""

    status: str  # 'running', 'sleeping', 'zombie', etc.
    username: str
    memory_rss: int  # Bytes
    threads: int


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """Immutable record of one process at the snapshot instant."""

    pid: int
    name: str = UNKNOWN_NAME
    cwd: str | None = None
    ppid: int | None = None
    metrics: ProcessMetrics | None = None
