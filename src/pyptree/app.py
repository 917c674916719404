"""pyptree - Textual browser for a process tree snapshot."""

from rich.text import Text
from textual.app import App, ComposeResult
from textual.widgets import Footer, Static, Tree
from textual.widgets.tree import TreeNode

from pyptree.index import ProcessIndex
from pyptree.models import ProcessRecord
from pyptree.render import NO_ROOT_MESSAGE, TreeRenderer, format_record, printable


def format_bytes(size: int) -> str:
    """Format bytes as human-readable string."""
    for unit in ["B", "K", "M", "G", "T"]:
        if size < 1024:
            return f"{size:5.1f}{unit}" if unit != "B" else f"{size:5d}{unit}"
        size = size / 1024
    return f"{size:.1f}P"


def describe_record(record: ProcessRecord | None) -> str:
    """Get the multi-line description shown in the details panel."""
    if record is None:
        return NO_ROOT_MESSAGE
    lines = [
        f"PID:    {record.pid}",
        f"Name:   {printable(record.name)}",
        f"Parent: {record.ppid if record.ppid is not None else '-'}",
        f"Path:   {printable(record.cwd) if record.cwd else '-'}",
    ]
    metrics = record.metrics
    if metrics is not None:
        lines.extend(
            [
                f"User:   {metrics.username or '-'}",
                f"Status: {metrics.status}",
                f"RES:    {format_bytes(metrics.memory_rss).strip()}",
                f"THR:    {metrics.threads}",
            ]
        )
    return "\n".join(lines)


class ProcessDetails(Static):
    """Panel showing the attributes of the highlighted process."""

    DEFAULT_CSS = """
    ProcessDetails {
        dock: bottom;
        height: auto;
        min-height: 4;
        padding: 0 1;
        background: $surface;
    }
    """

    shown_record: ProcessRecord | None = None

    def show(self, record: ProcessRecord | None) -> None:
        """Show a record, or the no-root message for None."""
        self.shown_record = record
        self.update(Text(describe_record(record)))


class ProcessTreeApp(App):
    """Browse a single process snapshot as a collapsible tree."""

    TITLE = "pyptree"
    SUB_TITLE = "Process Tree Snapshot"

    CSS = """
    Screen {
        layout: vertical;
    }

    #process-tree {
        height: 1fr;
        border: solid $primary;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("e", "expand_all", "Expand all"),
        ("c", "collapse_all", "Collapse all"),
    ]

    def __init__(self, index: ProcessIndex, root_pid: int | None) -> None:
        """
        Initialize the ProcessTreeApp.

        Args:
            index: The snapshot to browse. It is never rebuilt.
            root_pid: Pid the tree is rooted at.
        """
        super().__init__()
        self._renderer = TreeRenderer(index, root_pid)

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        root = self._renderer.root
        label = format_record(root) if root is not None else NO_ROOT_MESSAGE
        yield Tree(Text(label), data=root, id="process-tree")
        yield ProcessDetails(id="details")
        yield Footer()

    def on_mount(self) -> None:
        """Populate the tree from the snapshot."""
        tree = self.query_one("#process-tree", Tree)
        self.populate(tree)
        tree.root.expand_all()
        self.query_one("#details", ProcessDetails).show(tree.root.data)

    def populate(self, tree: Tree) -> None:
        """
        Add every descendant of the root to the tree widget.

        Uses the text renderer's walk, so node order and duplicate handling
        match the plain text output exactly.
        """
        # parents[d] is the most recent node at depth d; in pre-order the
        # parent of a node at depth d is always parents[d - 1].
        parents: list[TreeNode] = [tree.root]
        for record, depth in self._renderer.walk():
            if depth == 0:
                continue
            del parents[depth:]
            parent = parents[depth - 1]
            # Only nodes the walk actually descends into get an expand arrow
            parent.allow_expand = True
            node = parent.add(Text(format_record(record)), data=record, allow_expand=False)
            parents.append(node)

    def on_tree_node_highlighted(self, event: Tree.NodeHighlighted) -> None:
        """Show details of the highlighted process."""
        self.query_one("#details", ProcessDetails).show(event.node.data)

    def action_expand_all(self) -> None:
        """Expand every node."""
        self.query_one("#process-tree", Tree).root.expand_all()

    def action_collapse_all(self) -> None:
        """Collapse every node below the root."""
        root = self.query_one("#process-tree", Tree).root
        for child in root.children:
            child.collapse_all()
