"""Process sources: the OS binding and an in-memory fixture."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Protocol

import psutil

from pyptree.errors import EnumerationError, ProcessAttributeError
from pyptree.models import ProcessMetrics


class ProcessSource(Protocol):
    """Narrow interface over the host's process table."""

    def list_pids(self) -> Iterable[int]: ...

    def get_name(self, pid: int) -> str: ...

    def get_cwd(self, pid: int) -> str | None: ...

    def get_parent_id(self, pid: int) -> int | None: ...

    def get_metrics(self, pid: int) -> ProcessMetrics: ...


_CAPTURED_ATTRIBUTES = ("name", "cwd", "ppid")


class PsutilProcessSource:
    """
    Process source backed by psutil.

    Each pid gets one psutil.Process handle per snapshot, and name, cwd and
    ppid are read together under oneshot() the first time any of them is
    asked for, so a record never mixes attributes of two processes that
    reused the same pid. Every psutil failure (NoSuchProcess, AccessDenied,
    ZombieProcess) is translated into ProcessAttributeError so callers only
    deal with one type.
    """

    def __init__(self) -> None:
        """Initialize the source with an empty capture cache."""
        self._handles: dict[int, psutil.Process] = {}
        self._captured: dict[int, dict[str, object]] = {}

    def list_pids(self) -> list[int]:
        """Return the pids of all live processes and start a new snapshot."""
        try:
            pids = psutil.pids()
        except (psutil.Error, OSError) as exc:
            raise EnumerationError(f"cannot list processes: {exc}") from exc
        self._handles = {}
        self._captured = {}
        return pids

    def _handle(self, pid: int) -> psutil.Process:
        """Get the psutil handle for a pid, creating it on first use."""
        proc = self._handles.get(pid)
        if proc is None:
            proc = psutil.Process(pid)
            self._handles[pid] = proc
        return proc

    def _capture(self, pid: int) -> dict[str, object]:
        """
        Read name, cwd and ppid of a pid in one pass.

        Values are cached per pid; a failed read is cached as the exception.
        """
        captured = self._captured.get(pid)
        if captured is not None:
            return captured

        captured = {}
        try:
            proc = self._handle(pid)
        except (psutil.Error, OSError) as exc:
            captured = dict.fromkeys(_CAPTURED_ATTRIBUTES, exc)
        else:
            with proc.oneshot():
                for attribute in _CAPTURED_ATTRIBUTES:
                    try:
                        captured[attribute] = getattr(proc, attribute)()
                    except (psutil.Error, OSError) as exc:
                        captured[attribute] = exc
        self._captured[pid] = captured
        return captured

    def _get(self, pid: int, attribute: str):
        value = self._capture(pid)[attribute]
        if isinstance(value, Exception):
            raise ProcessAttributeError(pid, attribute, str(value)) from value
        return value

    def get_name(self, pid: int) -> str:
        """Return the process name."""
        return self._get(pid, "name")

    def get_cwd(self, pid: int) -> str | None:
        """Return the working directory, or None if psutil reports it empty."""
        return self._get(pid, "cwd") or None

    def get_parent_id(self, pid: int) -> int | None:
        """Return the parent pid."""
        return self._get(pid, "ppid")

    def get_metrics(self, pid: int) -> ProcessMetrics:
        """
        Return extended metrics for a process.

        Reuses the handle the other attributes were read from, under oneshot()
        so the platform is queried once for all metrics.
        """
        try:
            proc = self._handle(pid)
            with proc.oneshot():
                mem_info = proc.memory_info()
                return ProcessMetrics(
                    status=proc.status() or "?",
                    username=proc.username() or "",
                    memory_rss=mem_info.rss if mem_info else 0,
                    threads=proc.num_threads() or 0,
                )
        except (psutil.Error, OSError) as exc:
            raise ProcessAttributeError(pid, "metrics", str(exc)) from exc


@dataclass(slots=True, frozen=True)
class StaticProcess:
    """Fixture entry; a None name means the name lookup fails."""

    name: str | None = None
    cwd: str | None = None
    ppid: int | None = None
    metrics: ProcessMetrics | None = None


class StaticProcessSource:
    """
    Process source serving a fixed, in-memory process table.

    Pids passed in ``vanished`` are listed by list_pids() but every attribute
    lookup on them fails, as if the process exited right after enumeration.
    Setting ``fail_enumeration`` makes list_pids() raise EnumerationError.
    """

    def __init__(
        self,
        processes: Mapping[int, StaticProcess],
        vanished: Iterable[int] = (),
        fail_enumeration: bool = False,
    ) -> None:
        self._processes = dict(processes)
        self._vanished = set(vanished)
        self._fail_enumeration = fail_enumeration

    @classmethod
    def from_tuples(
        cls, entries: Iterable[tuple[int, str | None, str | None, int | None]]
    ) -> "StaticProcessSource":
        """Build a source from (pid, name, cwd, ppid) tuples."""
        return cls(
            {pid: StaticProcess(name=name, cwd=cwd, ppid=ppid) for pid, name, cwd, ppid in entries}
        )

    def list_pids(self) -> list[int]:
        if self._fail_enumeration:
            raise EnumerationError("process table unavailable")
        return [*self._processes, *self._vanished]

    def _lookup(self, pid: int, attribute: str) -> StaticProcess:
        if pid in self._vanished or pid not in self._processes:
            raise ProcessAttributeError(pid, attribute, "no such process")
        return self._processes[pid]

    def get_name(self, pid: int) -> str:
        name = self._lookup(pid, "name").name
        if name is None:
            raise ProcessAttributeError(pid, "name", "access denied")
        return name

    def get_cwd(self, pid: int) -> str | None:
        return self._lookup(pid, "cwd").cwd

    def get_parent_id(self, pid: int) -> int | None:
        return self._lookup(pid, "ppid").ppid

    def get_metrics(self, pid: int) -> ProcessMetrics:
        metrics = self._lookup(pid, "metrics").metrics
        if metrics is None:
            raise ProcessAttributeError(pid, "metrics", "not collected")
        return metrics
