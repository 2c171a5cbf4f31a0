"""Tests for composition validation rules."""

import os

import pytest

from patchwork.models import Composition, Patch, Severity, generate_patch_id


def make_patch(points, members=None):
    polyline = [list(p) for p in points] + [list(points[0])]
    return Patch(
        patch_id=generate_patch_id(polyline),
        polyline=polyline,
        member_count=members or len(points),
    )


def make_composition(patches, initial=20, remaining=None, exhausted=True):
    consumed = sum(p.member_count for p in patches)
    return Composition(
        width=10,
        height=10,
        margin=1,
        initial_point_count=initial,
        remaining_point_count=initial - consumed if remaining is None else remaining,
        cluster_count=3,
        exhausted=exhausted,
        patches=patches,
    )


def get_check(report, rule_id):
    return next(c for c in report.checks if c.rule_id == rule_id)


class TestRules:
    """Tests for individual validation rules."""
    
    def test_clean_composition_passes(self):
        """Test that a consistent composition has no errors or warnings."""
        from patchwork.validate.rules import run_validation
        
        comp = make_composition([
            make_patch([(2, 2), (4, 2), (4, 4)], members=5),
            make_patch([(5, 5), (8, 5), (8, 8)], members=4),
        ])
        
        report = run_validation(comp)
        
        assert not report.has_errors
        assert report.warning_count == 0
        assert get_check(report, "point_conservation").evidence["consumed"] == 9
    
    def test_conservation_violation(self):
        """Test that unaccounted points fail conservation."""
        from patchwork.validate.rules import run_validation
        
        comp = make_composition([make_patch([(2, 2), (4, 2), (4, 4)])], remaining=5)
        
        report = run_validation(comp)
        
        check = get_check(report, "point_conservation")
        assert not check.passed
        assert check.severity == Severity.ERROR
        assert report.has_errors
    
    def test_patch_outside_margin_warns(self):
        """Test that a patch crossing the margin is a warning."""
        from patchwork.validate.rules import run_validation
        
        comp = make_composition([make_patch([(0.5, 2), (4, 2), (4, 4)])])
        
        report = run_validation(comp)
        
        assert not get_check(report, "patches_within_bounds").passed
        assert report.warning_count == 1
        assert not report.has_errors
    
    def test_patch_on_margin_edge_passes(self):
        """Test that vertices exactly on the margin are inside."""
        from patchwork.validate.rules import run_validation
        
        comp = make_composition([make_patch([(1, 1), (9, 1), (9, 9)])])
        
        assert get_check(run_validation(comp), "patches_within_bounds").passed
    
    def test_not_exhausted_is_info(self):
        """Test that stopping early is reported but not an error."""
        from patchwork.validate.rules import run_validation
        
        comp = make_composition([], exhausted=False)
        
        report = run_validation(comp)
        
        check = get_check(report, "exhausted")
        assert not check.passed
        assert check.severity == Severity.INFO
        assert not report.has_errors
    
    def test_empty_composition(self):
        """Test validation with no patches at all."""
        from patchwork.validate.rules import run_validation
        
        report = run_validation(make_composition([], initial=3))
        
        assert not report.has_errors


class TestReport:
    """Tests for report files."""
    
    def test_report_files_written(self, temp_dir):
        """Test that JSON and text summaries are produced."""
        from patchwork.validate.report import generate_report
        from patchwork.validate.rules import run_validation
        
        comp = make_composition([make_patch([(2, 2), (4, 2), (4, 4)])])
        comp.validation = run_validation(comp)
        
        json_path, summary_path = generate_report(comp, temp_dir)
        
        assert os.path.exists(json_path)
        with open(summary_path, encoding="utf-8") as f:
            summary = f.read()
        assert "[PASS][ERROR] point_conservation" in summary
        assert "Patches: 1" in summary
