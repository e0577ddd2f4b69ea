"""Filesystem helpers: path validation, manifest discovery, and file watching."""

import os
import time
from collections.abc import Callable
from pathlib import Path

from vitestgpt.utils.logging import get_logger

_logger = get_logger()

MANIFEST_FILENAME = "package.json"

CONFLICT_MARKERS: tuple[str, ...] = ("<<<<<<< HEAD", "=======", ">>>>>>>")


class FileWatchError(Exception):
    """Raised when a watched file disappears or the watch predicate fails."""

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{message}: {path}")


def ensure_file_exists(file_path: str | Path) -> Path:
    """Resolve a path and verify it points to an existing file.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    resolved = Path(file_path).expanduser().resolve()
    if not resolved.is_file():
        raise FileNotFoundError(f"File not found: {resolved}")
    return resolved


def find_manifest(from_path: str | Path, name: str = MANIFEST_FILENAME) -> Path | None:
    """Search ``from_path`` and its ancestors for a project manifest.

    Args:
        from_path: File or directory to start from
        name: Manifest file name

    Returns:
        Path to the closest manifest, or None
    """
    start = Path(from_path).resolve()
    if not start.is_dir():
        start = start.parent

    for directory in (start, *start.parents):
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def make_relative_import_path(target_file: str | Path, importing_file: str | Path) -> str:
    """Build the module specifier ``importing_file`` uses to import ``target_file``.

    The specifier uses POSIX separators, drops the source extension and
    always starts with ``./`` or ``../``.
    """
    target = Path(target_file).resolve()
    importer_dir = Path(importing_file).resolve().parent

    relative = Path(os.path.relpath(target.with_suffix(""), importer_dir)).as_posix()
    if not relative.startswith("."):
        relative = f"./{relative}"
    return relative


def write_text(path: str | Path, content: str) -> Path:
    """Truncate ``path`` (creating parents) and write ``content``."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")
    return target


def has_conflict_markers(content: str) -> bool:
    """Return True if any merge conflict marker is still present."""
    return any(marker in content for marker in CONFLICT_MARKERS)


def _signature(path: Path) -> tuple[int, int]:
    stat = path.stat()
    return stat.st_mtime_ns, stat.st_size


def watch_file_until(
    path: str | Path,
    predicate: Callable[[str], bool],
    poll_interval: float = 0.5,
    timeout: float | None = None,
) -> str:
    """Block until ``predicate`` accepts the contents of ``path``.

    The predicate sees the current contents once, then fresh contents after
    every detected modification (mtime or size change). There is no timeout
    unless one is given.

    Args:
        path: File to watch
        predicate: Called with the file text; True ends the wait
        poll_interval: Seconds between modification checks
        timeout: Optional upper bound in seconds

    Returns:
        The file contents that satisfied the predicate

    Raises:
        FileWatchError: If the file vanishes or the predicate raises
        TimeoutError: If ``timeout`` elapses first
    """
    watched = Path(path)
    deadline = None if timeout is None else time.monotonic() + timeout

    def evaluate() -> tuple[bool, str]:
        try:
            content = watched.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise FileWatchError(watched, "Watched file was removed") from e
        try:
            return bool(predicate(content)), content
        except Exception as e:
            raise FileWatchError(watched, f"Watch predicate failed ({e})") from e

    try:
        last_signature = _signature(watched)
    except FileNotFoundError as e:
        raise FileWatchError(watched, "Watched file does not exist") from e
    satisfied, content = evaluate()

    while not satisfied:
        if deadline is not None and time.monotonic() >= deadline:
            raise TimeoutError(f"Timed out waiting for changes to {watched}")
        time.sleep(poll_interval)

        try:
            current_signature = _signature(watched)
        except FileNotFoundError as e:
            raise FileWatchError(watched, "Watched file was removed") from e

        if current_signature == last_signature:
            continue

        last_signature = current_signature
        _logger.debug("Detected change in %s", watched)
        satisfied, content = evaluate()

    return content
