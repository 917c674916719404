"""Exceptions raised by pyptree."""


class PyptreeError(Exception):
    """Base class for pyptree errors."""


class EnumerationError(PyptreeError):
    """The set of live process identifiers could not be obtained."""


class ProcessAttributeError(PyptreeError):
    """A single attribute of a single process could not be read."""

    def __init__(self, pid: int, attribute: str, reason: str = "") -> None:
        self.pid = pid
        self.attribute = attribute
        self.reason = reason
        message = f"cannot read {attribute} of process {pid}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
