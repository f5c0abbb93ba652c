"""Cache category definitions for cleanslim."""

import logging
from pathlib import Path
from typing import Optional

from cleanslim.models import Category, CategoryDefinition
from cleanslim.scanner import expand_path
from cleanslim.selection import SelectionStore

logger = logging.getLogger(__name__)

# All cache categories, in display and scan order
CATEGORIES: dict[str, CategoryDefinition] = {
    "system_cache": CategoryDefinition(
        id="system_cache",
        name="System Caches",
        icon="square.3.layers.3d.top.filled",
        path="~/Library/Caches",
        description="Per-application cache files that apps re-create on demand",
    ),
    "xcode_cache": CategoryDefinition(
        id="xcode_cache",
        name="Xcode DerivedData",
        icon="hammer.fill",
        path="~/Library/Developer/Xcode/DerivedData",
        description="Xcode build products and indexes; rebuilt on next compile",
    ),
    "system_logs": CategoryDefinition(
        id="system_logs",
        name="System Logs",
        icon="doc.text.fill",
        path="~/Library/Logs",
        description="Application and diagnostic log files",
    ),
    "temp_cache": CategoryDefinition(
        id="temp_cache",
        name="Temporary Files",
        icon="trash.fill",
        path="$TMPDIR",
        description="Per-user temporary directory",
    ),
    "app_state": CategoryDefinition(
        id="app_state",
        name="Saved Application State",
        icon="folder.fill.badge.gearshape",
        path="~/Library/Saved Application State",
        description="Window state restored when apps relaunch",
    ),
}


def get_category(category_id: str) -> CategoryDefinition | None:
    """Get a category definition by ID."""
    return CATEGORIES.get(category_id)


def get_all_categories() -> list[CategoryDefinition]:
    """Get all category definitions."""
    return list(CATEGORIES.values())


def resolve_path(path: str) -> Path | None:
    """
    Expand a category path.

    Returns:
        The absolute path, or None if it does not resolve to one (for
        example "$TMPDIR" when TMPDIR is unset)
    """
    expanded = expand_path(path)
    if not expanded.is_absolute():
        return None
    return expanded


def build_categories(
    selection_store: Optional[SelectionStore] = None,
    definitions: Optional[list[CategoryDefinition]] = None,
) -> list[Category]:
    """
    Create the session categories from the registry.

    Definitions whose path does not resolve on this machine are left out.

    Args:
        selection_store: Persisted selection; missing keys fall back to the
            definition's default
        definitions: Definitions to use instead of the registry

    Returns:
        One unmeasured Category per resolvable definition
    """
    if definitions is None:
        definitions = get_all_categories()

    categories = []
    for definition in definitions:
        path = resolve_path(definition.path)
        if path is None:
            logger.info(f"Skipping {definition.id}: {definition.path} does not resolve")
            continue

        selected = selection_store.get(definition.id) if selection_store else None
        if selected is None:
            selected = definition.default_selected
        categories.append(
            Category(
                id=definition.id,
                name=definition.name,
                icon=definition.icon,
                path=path,
                is_selected=selected,
            )
        )
    return categories
