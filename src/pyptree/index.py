"""Process index construction for pyptree."""

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from pyptree.errors import ProcessAttributeError
from pyptree.models import UNKNOWN_NAME, ProcessRecord
from pyptree.source import ProcessSource

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProcessIndex:
    """Snapshot of all processes keyed by pid, plus parent -> children links."""

    by_id: dict[int, ProcessRecord] = field(default_factory=dict)
    children_of: dict[int, list[int]] = field(default_factory=dict)

    @classmethod
    def from_records(cls, records: Iterable[ProcessRecord]) -> "ProcessIndex":
        """Build an index from records, adding them in ascending pid order."""
        index = cls()
        for record in sorted(records, key=lambda r: r.pid):
            index.add(record)
        return index

    def add(self, record: ProcessRecord) -> None:
        """Add a record, linking it under its parent when the parent is known."""
        if record.ppid is not None:
            self.children_of.setdefault(record.ppid, []).append(record.pid)
        self.by_id[record.pid] = record

    def get(self, pid: int) -> ProcessRecord | None:
        """Get the record for a pid, or None."""
        return self.by_id.get(pid)

    def children(self, pid: int) -> tuple[int, ...]:
        """Get the child pids of a pid in insertion order."""
        return tuple(self.children_of.get(pid, ()))

    def __len__(self) -> int:
        return len(self.by_id)

    def __contains__(self, pid: object) -> bool:
        return pid in self.by_id


class ProcessIndexBuilder:
    """
    Builds a ProcessIndex from a ProcessSource.

    Attribute lookups that fail degrade only the affected field: the name falls
    back to "Unknown", the working directory and parent become None. Only a
    failure to enumerate pids at all (EnumerationError) escapes build().
    """

    def __init__(
        self,
        source: ProcessSource,
        workers: int = 1,
        collect_metrics: bool = False,
    ) -> None:
        """
        Initialize the builder.

        Args:
            source: Where pids and per-process attributes come from.
            workers: Number of threads used to fetch attributes. Default 1.
            collect_metrics: Also fetch extended metrics for each process.
        """
        self._source = source
        self._workers = max(1, workers)
        self._collect_metrics = collect_metrics

    @property
    def workers(self) -> int:
        """Get the attribute-fetch pool size."""
        return self._workers

    def build(self) -> ProcessIndex:
        """Take a snapshot of the process table and index it."""
        pids = sorted(set(self._source.list_pids()))
        logger.debug("Enumerated %d processes", len(pids))

        # Records are gathered before any of them touch the index, so the
        # index is only ever mutated from this thread, in ascending pid order.
        if self._workers > 1 and len(pids) > 1:
            with ThreadPoolExecutor(
                max_workers=self._workers, thread_name_prefix="pyptree-fetch"
            ) as pool:
                records = list(pool.map(self._fetch_record, pids))
        else:
            records = [self._fetch_record(pid) for pid in pids]

        index = ProcessIndex()
        for record in records:
            index.add(record)
        return index

    def _fetch_record(self, pid: int) -> ProcessRecord:
        """Fetch every attribute of one process, degrading failed ones."""
        try:
            name = self._source.get_name(pid)
        except ProcessAttributeError as exc:
            logger.debug("%s", exc)
            name = UNKNOWN_NAME

        try:
            cwd = self._source.get_cwd(pid) or None
        except ProcessAttributeError as exc:
            logger.debug("%s", exc)
            cwd = None

        try:
            ppid = self._source.get_parent_id(pid)
        except ProcessAttributeError as exc:
            logger.debug("%s", exc)
            ppid = None

        metrics = None
        if self._collect_metrics:
            try:
                metrics = self._source.get_metrics(pid)
            except ProcessAttributeError as exc:
                logger.debug("%s", exc)

        return ProcessRecord(
            pid=pid,
            name=name or UNKNOWN_NAME,
            cwd=cwd,
            ppid=ppid,
            metrics=metrics,
        )
