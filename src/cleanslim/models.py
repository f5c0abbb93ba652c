"""Data models for cleanslim."""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def format_size(size_bytes: int) -> str:
    """Format bytes to human-readable string (decimal units like macOS)."""
    if size_bytes >= 1000**3:
        return f"{size_bytes / (1000**3):.1f} GB"
    elif size_bytes >= 1000**2:
        return f"{size_bytes / (1000**2):.1f} MB"
    elif size_bytes >= 1000:
        return f"{size_bytes / 1000:.1f} KB"
    else:
        return f"{size_bytes} B"


class ScanState(str, Enum):
    """Phase of the scan/clean state machine."""

    IDLE = "idle"
    SCANNING = "scanning"
    SCANNED = "scanned"
    CLEANING = "cleaning"
    COMPLETED = "completed"


class CategoryDefinition(BaseModel):
    """Static definition of a cache category."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique identifier for the category")
    name: str = Field(..., description="Human-readable name")
    icon: str = Field("folder", description="Icon tag used by front ends")
    path: str = Field(..., description="Root directory (supports ~ expansion)")
    default_selected: bool = Field(True, description="Selection when nothing is persisted")
    description: str = Field("", description="What this category contains")


class CategoryReport(BaseModel):
    """Immutable snapshot of a category after a scan."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    path: str
    size_bytes: int = 0
    file_count: int = 0


class Category(BaseModel):
    """A category tracked during one session; mutated in place by scan and clean."""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(..., description="Category identifier")
    name: str = Field(..., description="Human-readable name")
    icon: str = Field("folder", description="Icon tag")
    path: Path = Field(..., description="Expanded root directory")
    size_bytes: int = Field(0, ge=0, description="Allocated size measured by the last scan")
    file_count: int = Field(0, ge=0, description="Regular files measured by the last scan")
    is_selected: bool = Field(True, description="Whether the category will be cleaned")
    # size_bytes/file_count are unknown (not zero) until a scan measures them
    measured: bool = Field(False, description="Whether size/file_count come from a scan")

    @property
    def size_human(self) -> str:
        """Human-readable size string (decimal units like macOS)."""
        return format_size(self.size_bytes)

    def invalidate(self) -> None:
        """Forget the measured size, e.g. after the directory was cleaned."""
        self.size_bytes = 0
        self.file_count = 0
        self.measured = False

    def to_report(self) -> CategoryReport:
        return CategoryReport(
            id=self.id,
            name=self.name,
            path=str(self.path),
            size_bytes=self.size_bytes,
            file_count=self.file_count,
        )


class CleanOutcome(BaseModel):
    """Result of cleaning one category."""

    category_id: str = Field("", description="Category that was cleaned")
    path: str = Field(..., description="Directory whose children were deleted")
    items_total: int = Field(0, description="Immediate children found")
    items_deleted: int = Field(0, description="Children removed")
    items_failed: int = Field(0, description="Children that could not be removed")
    bytes_freed: int = Field(0, description="Bytes credited as freed")
    success: bool = Field(True, description="False only when the directory itself failed")
    error: Optional[str] = Field(None, description="Structural error message")
    dry_run: bool = Field(False, description="Whether this was a dry run")
    failures: list[str] = Field(default_factory=list, description="Per-item failure messages")

    @property
    def has_failures(self) -> bool:
        return self.items_failed > 0


class StateChange(BaseModel):
    """A transition of the orchestrator's state."""

    model_config = ConfigDict(frozen=True)

    previous: ScanState
    current: ScanState


class DiskUsage(BaseModel):
    """Overall disk usage information."""

    total_bytes: int = Field(..., description="Total disk size in bytes")
    used_bytes: int = Field(..., description="Used space in bytes")
    free_bytes: int = Field(..., description="Free space in bytes")
    mount_point: str = Field("/", description="Mount point")

    @property
    def total_gb(self) -> float:
        """Total size in GB (decimal, like macOS)."""
        return self.total_bytes / (1000**3)

    @property
    def used_gb(self) -> float:
        """Used space in GB (decimal, like macOS)."""
        return self.used_bytes / (1000**3)

    @property
    def free_gb(self) -> float:
        """Free space in GB (decimal, like macOS)."""
        return self.free_bytes / (1000**3)

    @property
    def used_percent(self) -> float:
        """Percentage of disk used."""
        return (self.used_bytes / self.total_bytes) * 100 if self.total_bytes > 0 else 0
