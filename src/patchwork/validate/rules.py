"""
Validation rules for patchwork.

Checks a finished composition against the invariants every run must hold:
closed, non-degenerate patches, conservation of points, and patches that
stay on the drawable area.
"""

from shapely.geometry import Polygon, box

from patchwork.models import CheckResult, Severity, ValidationReport, compute_bbox, distinct_vertices
from patchwork.tracer import get_tracer, trace


@trace(label="run_validation")
def run_validation(composition):
    """
    Run all validation checks on the composition.

    Returns ValidationReport with all check results.
    """
    tracer = get_tracer()

    checks = [
        check_closed_loops(composition),
        check_no_degenerate_patches(composition),
        check_point_conservation(composition),
        check_patches_within_bounds(composition),
        check_exhausted(composition),
    ]

    report = ValidationReport(checks=checks)

    tracer.event(f"Validation complete: {report.error_count} errors, {report.warning_count} warnings")

    return report


def check_closed_loops(composition):
    """
    Every patch must end on its first vertex and carry at least 3 vertices
    plus the closing repeat.
    """
    open_patches = [
        p.patch_id for p in composition.patches
        if len(p.polyline) < 4 or list(p.polyline[0]) != list(p.polyline[-1])
    ]

    if open_patches:
        return CheckResult(
            rule_id="closed_loops",
            severity=Severity.ERROR,
            passed=False,
            message=f"{len(open_patches)} patches are not closed loops",
            evidence={"open_patches": open_patches[:5]},
        )

    return CheckResult(
        rule_id="closed_loops",
        severity=Severity.ERROR,
        passed=True,
        message="All patches are closed loops",
        evidence={"patches": len(composition.patches)},
    )


def check_no_degenerate_patches(composition):
    """Every patch must have at least 3 distinct vertices."""
    degenerate = [
        p.patch_id for p in composition.patches
        if len(distinct_vertices(p.polyline)) < 3
    ]

    if degenerate:
        return CheckResult(
            rule_id="no_degenerate_patches",
            severity=Severity.ERROR,
            passed=False,
            message=f"{len(degenerate)} patches have fewer than 3 distinct vertices",
            evidence={"degenerate_patches": degenerate[:5]},
        )

    return CheckResult(
        rule_id="no_degenerate_patches",
        severity=Severity.ERROR,
        passed=True,
        message="No degenerate patches",
        evidence={},
    )


def check_point_conservation(composition):
    """
    Every initial point is either still in the cloud or was consumed by
    exactly one patch.
    """
    consumed = composition.consumed_point_count
    accounted = composition.remaining_point_count + consumed
    evidence = {
        "initial": composition.initial_point_count,
        "remaining": composition.remaining_point_count,
        "consumed": consumed,
    }

    if accounted != composition.initial_point_count:
        return CheckResult(
            rule_id="point_conservation",
            severity=Severity.ERROR,
            passed=False,
            message=f"{accounted} points accounted for, expected {composition.initial_point_count}",
            evidence=evidence,
        )

    return CheckResult(
        rule_id="point_conservation",
        severity=Severity.ERROR,
        passed=True,
        message="All points accounted for",
        evidence=evidence,
    )


def check_patches_within_bounds(composition):
    """
    Patches should lie inside the margin-inset drawing area.

    Hulls of points sampled inside that area cannot leave it, so a failure
    here points at externally supplied points or oracles.
    """
    m = composition.margin
    # tolerance for coordinates sampled exactly on the margin
    area = box(m, m, composition.width - m, composition.height - m).buffer(1e-9)

    outside = []
    for patch in composition.patches:
        polygon = Polygon(patch.polyline)
        if not area.covers(polygon):
            outside.append({"patch_id": patch.patch_id, "bbox": compute_bbox(patch.polyline)})

    if outside:
        return CheckResult(
            rule_id="patches_within_bounds",
            severity=Severity.WARN,
            passed=False,
            message=f"{len(outside)} patches extend past the margin",
            evidence={"outside": outside[:5]},
        )

    return CheckResult(
        rule_id="patches_within_bounds",
        severity=Severity.WARN,
        passed=True,
        message="All patches inside the drawable area",
        evidence={},
    )


def check_exhausted(composition):
    """Report whether the run reached the quiescent state."""
    return CheckResult(
        rule_id="exhausted",
        severity=Severity.INFO,
        passed=composition.exhausted,
        message=(
            "Point cloud exhausted"
            if composition.exhausted
            else f"Run stopped with {composition.remaining_point_count} points left"
        ),
        evidence={"ticks_run": composition.ticks_run},
    )
