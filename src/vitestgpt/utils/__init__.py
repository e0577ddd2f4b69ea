"""vitestgpt utility modules.

- logging: Standardized logging with human/verbose/JSON modes
- files: Path helpers, manifest lookup and the blocking file watch
- preflight: External tool availability checks
"""

from vitestgpt.utils.files import FileWatchError, find_manifest, watch_file_until
from vitestgpt.utils.logging import get_logger, setup_logging

__all__ = [
    "FileWatchError",
    "find_manifest",
    "get_logger",
    "setup_logging",
    "watch_file_until",
]
