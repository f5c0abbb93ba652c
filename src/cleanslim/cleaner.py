"""Cache directory cleanup for cleanslim."""

import logging
import os
import shutil
from pathlib import Path
from typing import Callable

from cleanslim.models import CleanOutcome
from cleanslim.scanner import expand_path

logger = logging.getLogger(__name__)

# Directories whose contents must NEVER be wiped wholesale
BLOCKED_PATHS = [
    "/",
    "~",
    "~/Documents",
    "~/Desktop",
    "~/Downloads",
    "~/Pictures",
    "~/Music",
    "~/Movies",
    "~/Library",
    "/System",
    "/Library",
    "/Applications",
    "/usr",
    "/bin",
    "/sbin",
    "/etc",
    "/var",
    "/private",
    "/Users",
    "/home",
]


def is_path_safe(path: Path) -> bool:
    """
    Check if a directory is safe to empty.

    Only the blocked roots themselves are refused; directories below them
    (e.g. ~/Library/Caches) are allowed.

    Args:
        path: Directory to check

    Returns:
        True if safe to clean, False otherwise
    """
    path_str = os.path.normpath(os.path.abspath(str(path)))

    for blocked in BLOCKED_PATHS:
        blocked_expanded = os.path.normpath(str(expand_path(blocked)))
        if path_str == blocked_expanded:
            return False

    return path_str != os.path.normpath(str(Path.home()))


def delete_entry(path: Path) -> str | None:
    """
    Delete one file, symlink or directory tree.

    Args:
        path: Entry to delete

    Returns:
        Error message, or None if the entry is gone
    """
    try:
        if path.is_symlink() or not path.is_dir():
            path.unlink()
        else:
            shutil.rmtree(path)
        return None
    except FileNotFoundError:
        # Removed by someone else in the meantime
        return None
    except PermissionError as e:
        return f"Permission denied: {e}"
    except OSError as e:
        return f"OS error: {e}"


def clean_directory(
    path: Path | str,
    on_progress: Callable[[float], None] | None = None,
    dry_run: bool = False,
    category_id: str = "",
) -> CleanOutcome:
    """
    Delete the immediate children of a directory.

    Each child is removed as a single operation (directories with everything
    inside them). A child that cannot be removed is counted and skipped; only
    a failure of the directory itself (missing, unreadable, blocked) fails the
    whole call, and in that case nothing is deleted and no progress is
    reported.

    Args:
        path: Directory to empty
        on_progress: Optional callback(fraction) after every child, ending at 1.0
        dry_run: If True, don't actually delete
        category_id: Category the directory belongs to, copied into the outcome

    Returns:
        CleanOutcome; success is False only for a structural failure
    """
    root = Path(path)

    if not is_path_safe(root):
        logger.warning(f"Refusing to clean blocked path: {root}")
        return CleanOutcome(
            category_id=category_id,
            path=str(root),
            success=False,
            error=f"Blocked path: {root}",
            dry_run=dry_run,
        )

    try:
        children = sorted(root.iterdir())
    except (PermissionError, OSError) as e:
        logger.warning(f"Cannot list {root}: {e}")
        return CleanOutcome(
            category_id=category_id,
            path=str(root),
            success=False,
            error=str(e),
            dry_run=dry_run,
        )

    total = len(children)
    if total == 0:
        if on_progress:
            on_progress(1.0)
        return CleanOutcome(category_id=category_id, path=str(root), dry_run=dry_run)

    deleted = 0
    failures = []
    for index, child in enumerate(children, 1):
        error = None if dry_run else delete_entry(child)
        if error:
            logger.warning(f"Could not delete {child}: {error}")
            failures.append(f"{child}: {error}")
        else:
            deleted += 1

        if on_progress:
            on_progress(index / total)

    logger.debug(f"Cleaned {root}: {deleted}/{total} removed")
    return CleanOutcome(
        category_id=category_id,
        path=str(root),
        items_total=total,
        items_deleted=deleted,
        items_failed=len(failures),
        dry_run=dry_run,
        failures=failures,
    )
