"""
Validation report generation for patchwork.

Creates JSON and plain-text reports of validation results.
"""

import os

from patchwork.io.save_artifacts import ensure_dir, save_json
from patchwork.tracer import get_tracer, trace


@trace(label="generate_report")
def generate_report(composition, out_dir):
    """
    Generate validation report files.

    Creates:
    - validation_report.json: Full check results
    - validation_summary.txt: Human-readable summary
    """
    tracer = get_tracer()

    report = composition.validation

    report_path = os.path.join(out_dir, "validation_report.json")
    save_json(report, report_path)

    passed = [c for c in report.checks if c.passed]
    failed = [c for c in report.checks if not c.passed]

    summary_lines = ["Patchwork Validation Report", "=" * 40, ""]
    summary_lines.append(f"Patches: {len(composition.patches)}")
    summary_lines.append(f"Points remaining: {composition.remaining_point_count} / {composition.initial_point_count}")
    summary_lines.append(f"Ticks run: {composition.ticks_run}")
    summary_lines.append("")
    summary_lines.append(f"Total checks: {len(report.checks)}")
    summary_lines.append(f"Passed: {len(passed)}")
    summary_lines.append(f"Failed: {len(failed)}")
    summary_lines.append("")

    if failed:
        summary_lines.append("ISSUES:")
        summary_lines.append("-" * 40)
        for check in failed:
            summary_lines.append(format_check_result(check))
        summary_lines.append("")

    summary_lines.append("ALL CHECKS:")
    summary_lines.append("-" * 40)
    for check in report.checks:
        summary_lines.append(format_check_result(check))

    summary_path = os.path.join(out_dir, "validation_summary.txt")
    ensure_dir(os.path.dirname(summary_path))
    with open(summary_path, "w", encoding="utf-8") as f:
        f.write("\n".join(summary_lines) + "\n")

    tracer.event(f"Report saved: {len(report.checks)} checks, {report.error_count} errors")

    return report_path, summary_path


def format_check_result(check):
    """Format a single check result for display."""
    status = "PASS" if check.passed else "FAIL"
    severity = check.severity.value.upper()
    return f"[{status}][{severity}] {check.rule_id}: {check.message}"
