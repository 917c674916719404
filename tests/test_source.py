"""Tests for process sources."""

import os

import psutil
import pytest

import pyptree.source
from pyptree.errors import EnumerationError, ProcessAttributeError
from pyptree.models import ProcessMetrics
from pyptree.source import PsutilProcessSource, StaticProcess, StaticProcessSource


class TestStaticProcessSource:
    """Tests for the in-memory source."""

    def test_list_pids_includes_vanished(self, degraded_source):
        """Test vanished pids are enumerated like live ones."""
        assert sorted(degraded_source.list_pids()) == [1, 5, 6, 7, 9]

    def test_attribute_lookups(self, degraded_source):
        """Test attributes are served from the fixture."""
        assert degraded_source.get_name(1) == "init"
        assert degraded_source.get_cwd(1) == "/"
        assert degraded_source.get_parent_id(9) == 42
        assert degraded_source.get_parent_id(1) is None

    def test_missing_name_raises(self, degraded_source):
        """Test a None name in the fixture behaves as a failed lookup."""
        with pytest.raises(ProcessAttributeError) as info:
            degraded_source.get_name(5)
        assert info.value.pid == 5
        assert info.value.attribute == "name"

    def test_vanished_pid_raises_for_every_attribute(self, degraded_source):
        """Test every lookup on a vanished pid fails."""
        for lookup in (
            degraded_source.get_name,
            degraded_source.get_cwd,
            degraded_source.get_parent_id,
            degraded_source.get_metrics,
        ):
            with pytest.raises(ProcessAttributeError):
                lookup(7)

    def test_failing_enumeration(self):
        """Test fail_enumeration makes list_pids raise."""
        source = StaticProcessSource({}, fail_enumeration=True)

        with pytest.raises(EnumerationError):
            source.list_pids()

    def test_metrics(self):
        """Test metrics are served when present and fail when absent."""
        metrics = ProcessMetrics(status="running", username="me", memory_rss=1, threads=1)
        source = StaticProcessSource(
            {1: StaticProcess(name="a", metrics=metrics), 2: StaticProcess(name="b")}
        )

        assert source.get_metrics(1) is metrics
        with pytest.raises(ProcessAttributeError):
            source.get_metrics(2)

    def test_from_tuples(self, scenario_source):
        """Test the tuple constructor maps pid, name, cwd and ppid."""
        assert sorted(scenario_source.list_pids()) == [1, 2, 3, 4]
        assert scenario_source.get_name(4) == "c"
        assert scenario_source.get_parent_id(4) == 2
        assert scenario_source.get_cwd(4) is None


class TestPsutilProcessSource:
    """Tests against the real process table."""

    def test_list_pids_contains_self(self):
        """Test the current process is enumerated."""
        assert os.getpid() in PsutilProcessSource().list_pids()

    def test_own_attributes(self):
        """Test attributes of the current process can be read."""
        source = PsutilProcessSource()
        pid = os.getpid()

        assert isinstance(source.get_name(pid), str)
        assert source.get_parent_id(pid) == os.getppid()
        assert source.get_cwd(pid) == os.getcwd()

    def test_own_metrics(self):
        """Test metrics of the current process can be read."""
        metrics = PsutilProcessSource().get_metrics(os.getpid())

        assert metrics.memory_rss > 0
        assert metrics.threads >= 1
        assert isinstance(metrics.status, str)
        assert isinstance(metrics.username, str)

    def test_missing_process_raises_attribute_error(self):
        """Test lookups on a pid that does not exist fail per attribute."""
        source = PsutilProcessSource()
        pid = max(psutil.pids()) + 100000

        with pytest.raises(ProcessAttributeError) as info:
            source.get_name(pid)
        assert info.value.attribute == "name"
        with pytest.raises(ProcessAttributeError):
            source.get_cwd(pid)
        with pytest.raises(ProcessAttributeError):
            source.get_parent_id(pid)

    def test_enumeration_failure_is_wrapped(self, monkeypatch):
        """Test psutil failures during enumeration become EnumerationError."""

        def broken_pids():
            raise PermissionError("denied")

        monkeypatch.setattr(psutil, "pids", broken_pids)

        with pytest.raises(EnumerationError):
            PsutilProcessSource().list_pids()

    def test_empty_cwd_is_absent(self, monkeypatch):
        """Test an empty working directory is reported as None."""
        monkeypatch.setattr(psutil.Process, "cwd", lambda self: "")

        assert PsutilProcessSource().get_cwd(os.getpid()) is None


class TestPsutilSnapshotCapture:
    """Tests that each pid is read through one handle, once per snapshot."""

    @pytest.fixture
    def created(self, monkeypatch):
        """Record every psutil.Process constructed by the source."""
        created: list[int] = []

        class CountingProcess(psutil.Process):
            def __init__(self, pid):
                created.append(pid)
                super().__init__(pid)

        class SourcePsutil:
            """psutil as seen by pyptree.source, with a counting Process."""

            Process = CountingProcess

            def __getattr__(self, name):
                return getattr(psutil, name)

        # Patch only the source's view of psutil, so psutil's own internal
        # Process(pid) constructions (e.g. pid-reuse checks) are not counted.
        monkeypatch.setattr(pyptree.source, "psutil", SourcePsutil())
        return created

    def test_one_handle_per_pid(self, created):
        """Test name, cwd, ppid and metrics share a single psutil handle."""
        source = PsutilProcessSource()
        pid = os.getpid()
        source.list_pids()

        source.get_name(pid)
        source.get_cwd(pid)
        source.get_parent_id(pid)
        source.get_metrics(pid)

        assert created == [pid]

    def test_attributes_captured_together(self, created, monkeypatch):
        """Test later lookups return the values read with the first one."""
        source = PsutilProcessSource()
        pid = os.getpid()
        source.list_pids()
        name = source.get_name(pid)

        monkeypatch.setattr(psutil.Process, "ppid", lambda self: -1)
        monkeypatch.setattr(psutil.Process, "name", lambda self: "reused")

        assert source.get_parent_id(pid) == os.getppid()
        assert source.get_name(pid) == name

    def test_new_snapshot_reads_again(self, created):
        """Test list_pids() starts a new snapshot with fresh handles."""
        source = PsutilProcessSource()
        pid = os.getpid()

        source.list_pids()
        source.get_name(pid)
        source.list_pids()
        source.get_name(pid)

        assert created == [pid, pid]

    def test_vanished_pid_fails_every_attribute(self, created):
        """Test a pid that is gone fails each lookup with one handle attempt."""
        source = PsutilProcessSource()
        pid = max(psutil.pids()) + 100000

        for lookup, attribute in (
            (source.get_name, "name"),
            (source.get_cwd, "cwd"),
            (source.get_parent_id, "ppid"),
        ):
            with pytest.raises(ProcessAttributeError) as info:
                lookup(pid)
            assert info.value.attribute == attribute

        assert created == [pid]
