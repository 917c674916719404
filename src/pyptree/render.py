"""Text rendering of a process index as an indented tree."""

from collections.abc import Iterator
from typing import TextIO

from pyptree.index import ProcessIndex
from pyptree.models import ProcessRecord

INDENT_UNIT = "|   "
BRANCH = "└── "
ROOT_PREFIX = "Process: "
NO_ROOT_MESSAGE = "No root process found"


def printable(text: str) -> str:
    """
    Escape lone surrogates so the text can always be encoded as UTF-8.

    psutil decodes undecodable bytes in names and paths to lone surrogates
    (b"\\xff" becomes "\\udcff"); those are written out as a literal "\\udcff".
    """
    return text.encode("utf-8", "backslashreplace").decode("utf-8")


def format_record(record: ProcessRecord) -> str:
    """Format a record as 'PID: <pid>, Name: <name>[, Path: <cwd>]'."""
    line = f"PID: {record.pid}, Name: {printable(record.name)}"
    if record.cwd:
        line += f", Path: {printable(record.cwd)}"
    return line


class TreeRenderer:
    """
    Renders the descendants of a root process as an indented tree.

    The walk is an iterative depth-first pre-order traversal over an explicit
    stack of (pid, depth) pairs. Each pid is emitted at most once, so duplicate
    parent edges, self-parents and cycles in a malformed index are skipped.
    """

    def __init__(
        self,
        index: ProcessIndex,
        root_pid: int | None,
        indent_unit: str = INDENT_UNIT,
        branch: str = BRANCH,
    ) -> None:
        self._index = index
        self._root_pid = root_pid
        self._indent_unit = indent_unit
        self._branch = branch

    @property
    def root(self) -> ProcessRecord | None:
        """Get the root record, or None if the snapshot has no root."""
        if self._root_pid is None:
            return None
        return self._index.get(self._root_pid)

    def walk(self) -> Iterator[tuple[ProcessRecord, int]]:
        """Yield (record, depth) pairs in output order, starting with the root."""
        root = self.root
        if root is None:
            return

        visited: set[int] = set()
        stack: list[tuple[int, int]] = [(root.pid, 0)]
        while stack:
            pid, depth = stack.pop()
            if pid in visited:
                continue
            record = self._index.get(pid)
            if record is None:
                continue
            visited.add(pid)
            yield record, depth

            # Reversed so the smallest pid is popped first
            for child in reversed(self._index.children(pid)):
                if child not in visited:
                    stack.append((child, depth + 1))

    def format_line(self, record: ProcessRecord, depth: int) -> str:
        """Format one output line for a record at the given depth."""
        if depth == 0:
            return ROOT_PREFIX + format_record(record)
        return self._indent_unit * depth + self._branch + format_record(record)

    def lines(self) -> list[str]:
        """Get the output lines without line terminators."""
        lines = [self.format_line(record, depth) for record, depth in self.walk()]
        return lines or [NO_ROOT_MESSAGE]

    def render(self) -> str:
        """Render the whole tree, with a trailing newline."""
        return "\n".join(self.lines()) + "\n"

    def write(self, stream: TextIO) -> None:
        """
        Render the tree and write it to a stream in one call.

        Write errors propagate to the caller.
        """
        stream.write(self.render())
        stream.flush()
