"""Runtime settings for pyptree."""

import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field

ENV_ROOT_PID = "PYPTREE_ROOT_PID"
ENV_WORKERS = "PYPTREE_WORKERS"
ENV_METRICS = "PYPTREE_METRICS"

_POSIX_PLATFORMS = ("linux", "darwin", "freebsd", "openbsd", "netbsd", "sunos", "aix")


def default_root_pid(platform: str | None = None) -> int | None:
    """
    Get the well-known root pid for a platform.

    Windows reports the System Idle Process as pid 0; POSIX hosts start with
    init/launchd as pid 1. Unknown platforms have no root.
    """
    platform = sys.platform if platform is None else platform
    if platform.startswith(("win32", "cygwin")):
        return 0
    if platform.startswith(_POSIX_PLATFORMS):
        return 1
    return None


def _parse_int(environ: Mapping[str, str], name: str) -> int | None:
    value = environ.get(name, "").strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


def _parse_bool(environ: Mapping[str, str], name: str) -> bool | None:
    value = environ.get(name, "").strip().lower()
    if not value:
        return None
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


@dataclass(slots=True)
class Settings:
    """Settings for one pyptree run."""

    root_pid: int | None = field(default_factory=default_root_pid)
    workers: int = 1
    collect_metrics: bool = False

    def __post_init__(self) -> None:
        self.workers = max(1, self.workers)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """
        Load settings from environment variables, falling back to defaults.

        Args:
            environ: Mapping to read from. Defaults to os.environ.

        Raises:
            ValueError: If a variable is set but malformed.
        """
        environ = os.environ if environ is None else environ
        settings = cls()

        root_pid = _parse_int(environ, ENV_ROOT_PID)
        if root_pid is not None:
            settings.root_pid = root_pid

        workers = _parse_int(environ, ENV_WORKERS)
        if workers is not None:
            settings.workers = max(1, workers)

        collect_metrics = _parse_bool(environ, ENV_METRICS)
        if collect_metrics is not None:
            settings.collect_metrics = collect_metrics

        return settings
