"""Directory size measurement for cleanslim."""

import logging
import os
import shutil
from pathlib import Path

from cleanslim.models import DiskUsage

logger = logging.getLogger(__name__)

# st_blocks is always counted in 512-byte units, whatever the filesystem block size
BLOCK_UNIT = 512


def expand_path(path: str) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expanduser(os.path.expandvars(path)))


def allocated_size(stat_result: os.stat_result) -> int:
    """
    On-disk size of a file.

    Uses the allocated block count where the platform reports it, so sparse
    files count what they occupy and small files count a whole block.
    Falls back to the logical size elsewhere.
    """
    blocks = getattr(stat_result, "st_blocks", None)
    if blocks is None:
        return stat_result.st_size
    return blocks * BLOCK_UNIT


def inspect_directory(path: Path | str, allocated: bool = True) -> tuple[int, int]:
    """
    Measure a directory tree.

    Every regular file below ``path`` is counted once; symlinks are neither
    followed nor counted. Entries that cannot be listed or stat'd are skipped,
    so the result is a best-effort figure and this function never raises.

    Args:
        path: Directory to measure
        allocated: Sum allocated (on-disk) sizes instead of logical sizes

    Returns:
        Tuple of (size_bytes, file_count); (0, 0) if path does not exist
    """
    measure = allocated_size if allocated else (lambda st: st.st_size)
    root = Path(path)

    try:
        root_stat = root.stat()
    except (PermissionError, OSError):
        return 0, 0

    if root.is_file():
        return measure(root_stat), 1

    total_size = 0
    file_count = 0
    pending = [root]

    while pending:
        current = pending.pop()
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    try:
                        if entry.is_file(follow_symlinks=False):
                            total_size += measure(entry.stat(follow_symlinks=False))
                            file_count += 1
                        elif entry.is_dir(follow_symlinks=False):
                            pending.append(Path(entry.path))
                    except (PermissionError, OSError) as e:
                        logger.debug(f"Skipping {entry.path}: {e}")
                        continue
        except (PermissionError, OSError) as e:
            logger.debug(f"Cannot list {current}: {e}")
            continue

    return total_size, file_count


def get_disk_usage(path: str = "/") -> DiskUsage:
    """
    Get disk usage for the filesystem holding path.

    Args:
        path: Any path on the filesystem to check

    Returns:
        DiskUsage object
    """
    usage = shutil.disk_usage(path)
    return DiskUsage(
        total_bytes=usage.total,
        used_bytes=usage.used,
        free_bytes=usage.free,
        mount_point=path,
    )
