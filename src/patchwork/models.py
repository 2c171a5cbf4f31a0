"""
Pydantic data models for patchwork compositions.

Patches, tick results and the finished composition all flow through these
validated models. Content-based patch IDs keep seeded runs reproducible.
"""

import hashlib
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TickOutcome(str, Enum):
    """What a single tick did."""
    EXTRACTED = "extracted"
    INSUFFICIENT_DATA = "insufficient_data"
    NO_QUALIFYING_CLUSTER = "no_qualifying_cluster"
    DEGENERATE_HULL = "degenerate_hull"
    SKIPPED_BUSY = "skipped_busy"


class Severity(str, Enum):
    """Severity levels for validation checks."""
    ERROR = "error"
    WARN = "warn"
    INFO = "info"


class Patch(BaseModel):
    """A closed polyline carved out of the cloud by one successful tick."""
    patch_id: str
    tick: int = 0
    polyline: List[List[float]]
    member_count: int = Field(..., ge=3)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("polyline")
    @classmethod
    def _closed_polygon(cls, polyline):
        if len(polyline) < 4:
            raise ValueError("a patch needs at least 3 vertices plus the closing point")
        if list(polyline[0]) != list(polyline[-1]):
            raise ValueError("a patch must end on its first vertex")
        if len(distinct_vertices(polyline)) < 3:
            raise ValueError("a patch needs at least 3 distinct vertices")
        return polyline

    @property
    def vertex_count(self):
        """Number of vertices excluding the closing repeat."""
        return len(self.polyline) - 1


class TickResult(BaseModel):
    """Outcome of one tick, recorded for logging and tests."""
    tick: int
    outcome: TickOutcome
    points_before: int
    points_after: int
    patch_id: Optional[str] = None
    cluster_sizes: List[int] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @property
    def produced_patch(self):
        return self.outcome == TickOutcome.EXTRACTED


class CheckResult(BaseModel):
    """Result of a single validation check."""
    rule_id: str
    severity: Severity
    passed: bool
    message: str
    evidence: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")


class ValidationReport(BaseModel):
    """Collection of validation check results."""
    checks: List[CheckResult] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @property
    def has_errors(self):
        """Check if any errors exist."""
        return any(c.severity == Severity.ERROR and not c.passed for c in self.checks)

    @property
    def error_count(self):
        """Count of failed error-level checks."""
        return sum(1 for c in self.checks if c.severity == Severity.ERROR and not c.passed)

    @property
    def warning_count(self):
        """Count of failed warning-level checks."""
        return sum(1 for c in self.checks if c.severity == Severity.WARN and not c.passed)


class Composition(BaseModel):
    """Root document for one generated plot."""
    created_at: str = Field(default_factory=lambda: datetime.now().isoformat())
    width: float
    height: float
    margin: float = 0.0
    units: str = "cm"
    seed: Optional[int] = None
    initial_point_count: int
    remaining_point_count: int
    cluster_count: int
    ticks_run: int = 0
    exhausted: bool = False
    patches: List[Patch] = Field(default_factory=list)
    validation: ValidationReport = Field(default_factory=ValidationReport)

    model_config = ConfigDict(extra="forbid")

    @property
    def consumed_point_count(self):
        return sum(p.member_count for p in self.patches)


def distinct_vertices(polyline):
    """Return the distinct (x, y) vertices of a polyline, in order."""
    seen = []
    for p in polyline:
        key = (float(p[0]), float(p[1]))
        if key not in seen:
            seen.append(key)
    return seen


def generate_patch_id(polyline, round_digits=4):
    """
    Generate deterministic patch ID from polyline coordinates.

    Rounds coordinates to avoid floating point instability.
    """
    rounded = [[round(p[0], round_digits), round(p[1], round_digits)] for p in polyline]
    h = hashlib.sha256(str(rounded).encode()).hexdigest()[:12]
    return f"patch_{h}"


def compute_bbox(points):
    """
    Compute bounding box from a list of [x, y] points.

    Returns [min_x, min_y, max_x, max_y].
    """
    if not points:
        return [0.0, 0.0, 0.0, 0.0]

    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return [min(xs), min(ys), max(xs), max(ys)]
