"""Tests for per-tick patch extraction."""

import numpy as np
import pytest

from patchwork.extract.accumulator import PolylineAccumulator
from patchwork.extract.extractor import PatchExtractor
from patchwork.models import TickOutcome


def make_extractor(cloud, clusterer, hull, cluster_count=2):
    return PatchExtractor(cloud, PolylineAccumulator(), clusterer, hull, cluster_count=cluster_count)


class TestScriptedRun:
    """The ten-point, two-cluster walkthrough with stub oracles."""
    
    def test_three_tick_walkthrough(self, ten_point_cloud, stubs):
        """Test that sparsest clusters are carved out until the cloud is exhausted."""
        clusterer = stubs["groups"](
            [[0, 1, 2, 3, 4, 5], [6, 7, 8, 9]],
            [[0, 1, 2, 3], [4, 5]],
        )
        extractor = make_extractor(ten_point_cloud, clusterer, stubs["all_hull"]())
        
        assert ten_point_cloud.size() == 10
        
        first = extractor.tick()
        assert first.outcome == TickOutcome.EXTRACTED
        assert len(extractor.accumulator) == 1
        assert len(extractor.accumulator[0].polyline) == 5
        assert ten_point_cloud.size() == 6
        
        second = extractor.tick()
        assert second.outcome == TickOutcome.EXTRACTED
        assert second.cluster_sizes == [4, 2]
        assert ten_point_cloud.size() == 2
        
        third = extractor.tick()
        assert third.outcome == TickOutcome.INSUFFICIENT_DATA
        assert ten_point_cloud.size() == 2
        assert len(extractor.accumulator) == 2
        
        # oracle only ever saw the live points
        assert clusterer.seen_sizes == [10, 6]
    
    def test_first_tick_removes_selected_members(self, ten_point_cloud, stubs):
        """Test that every member of the chosen cluster leaves the cloud."""
        clusterer = stubs["groups"]([[0, 1, 2, 3, 4, 5], [6, 7, 8, 9]])
        extractor = make_extractor(ten_point_cloud, clusterer, stubs["all_hull"]())
        
        extractor.tick()
        
        assert list(ten_point_cloud.handles()) == [0, 1, 2, 3, 4, 5]
    
    def test_patch_follows_hull_order(self, ten_point_cloud, stubs):
        """Test that the polyline visits hull vertices in the returned order and closes."""
        clusterer = stubs["groups"]([[0, 1, 2, 3, 4, 5], [6, 7, 8, 9]])
        extractor = make_extractor(ten_point_cloud, clusterer, stubs["fixed_hull"]([2, 0, 3]))
        
        coords = ten_point_cloud.coordinates()
        extractor.tick()
        
        polyline = extractor.accumulator[0].polyline
        expected = [coords[8].tolist(), coords[6].tolist(), coords[9].tolist(), coords[8].tolist()]
        assert polyline == expected
        # interior member 7 is consumed too
        assert 7 not in ten_point_cloud
        assert extractor.accumulator[0].member_count == 4


class TestNoOpTicks:
    """Ticks that must leave the cloud and accumulator untouched."""
    
    def test_degenerate_hull_preserves_points(self, ten_point_cloud, stubs):
        """Test that a two-vertex hull yields no patch and consumes nothing."""
        clusterer = stubs["groups"]([[0, 1, 2, 3, 4], [5, 6, 7, 8, 9]])
        extractor = make_extractor(ten_point_cloud, clusterer, stubs["fixed_hull"]([0, 1]))
        
        result = extractor.tick()
        
        assert result.outcome == TickOutcome.DEGENERATE_HULL
        assert ten_point_cloud.size() == 10
        assert len(extractor.accumulator) == 0
    
    def test_hull_with_repeated_vertex_is_degenerate(self, ten_point_cloud, stubs):
        """Test that three indices naming only two distinct points are rejected."""
        clusterer = stubs["groups"]([[0, 1, 2], [3, 4, 5, 6, 7, 8, 9]])
        extractor = make_extractor(ten_point_cloud, clusterer, stubs["fixed_hull"]([0, 1, 0]))
        
        result = extractor.tick()
        
        assert result.outcome == TickOutcome.DEGENERATE_HULL
        assert ten_point_cloud.size() == 10
    
    def test_no_qualifying_cluster(self, ten_point_cloud, stubs):
        """Test that clusters under three points are skipped without consuming points."""
        groups = [[0, 1], [2, 3], [4, 5], [6, 7], [8, 9]]
        extractor = make_extractor(
            ten_point_cloud, stubs["groups"](groups), stubs["all_hull"](), cluster_count=5
        )
        
        result = extractor.tick()
        
        assert result.outcome == TickOutcome.NO_QUALIFYING_CLUSTER
        assert result.cluster_sizes == [2, 2, 2, 2, 2]
        assert ten_point_cloud.size() == 10
    
    def test_insufficient_data_is_idempotent(self, stubs):
        """Test that repeated ticks on an exhausted cloud change nothing."""
        from patchwork.cloud.point_cloud import PointCloud
        
        cloud = PointCloud([[1, 1], [2, 2], [3, 1]])
        clusterer = stubs["groups"]([[0, 1, 2]])
        extractor = make_extractor(cloud, clusterer, stubs["all_hull"](), cluster_count=3)
        
        for _ in range(25):
            result = extractor.tick()
            assert result.outcome == TickOutcome.INSUFFICIENT_DATA
        
        assert cloud.size() == 3
        assert len(extractor.accumulator) == 0
        assert clusterer.seen_sizes == []
        assert extractor.is_exhausted()
    
    def test_invalid_cluster_count(self, ten_point_cloud, stubs):
        """Test that a cluster count below one is rejected."""
        with pytest.raises(ValueError):
            make_extractor(ten_point_cloud, stubs["groups"]([]), stubs["all_hull"](), cluster_count=0)


class TestRealOracles:
    """Properties that must hold with k-means and scipy hulls."""
    
    def run_to_completion(self, seed, count=400, cluster_count=3, max_ticks=2000):
        from patchwork.cloud.point_cloud import PointCloud
        from patchwork.cluster.oracles import ConvexHullOracle, KMeansClusterer
        
        cloud = PointCloud.random(count, 20, 20, 1, seed=seed)
        extractor = PatchExtractor(
            cloud, PolylineAccumulator(), KMeansClusterer(seed=seed), ConvexHullOracle(),
            cluster_count=cluster_count,
        )
        results = []
        idle = 0
        while not extractor.is_exhausted() and len(results) < max_ticks and idle < 50:
            result = extractor.tick()
            results.append(result)
            idle = 0 if result.outcome == TickOutcome.EXTRACTED else idle + 1
        return cloud, extractor, results
    
    def test_monotonic_shrink(self):
        """Test that the cloud shrinks exactly on ticks that emit a patch."""
        _, _, results = self.run_to_completion(seed=3)
        
        for result in results:
            assert result.points_after <= result.points_before
            shrank = result.points_after < result.points_before
            assert shrank == (result.outcome == TickOutcome.EXTRACTED)
    
    def test_point_conservation(self):
        """Test that every point is either live or consumed by exactly one patch."""
        cloud, extractor, _ = self.run_to_completion(seed=11)
        
        consumed = sum(p.member_count for p in extractor.accumulator)
        assert cloud.size() + consumed == 400
    
    def test_patches_closed_and_non_degenerate(self):
        """Test closure and vertex count of every emitted patch."""
        from patchwork.models import distinct_vertices
        
        _, extractor, _ = self.run_to_completion(seed=5)
        
        assert len(extractor.accumulator) > 0
        for patch in extractor.accumulator:
            assert len(patch.polyline) >= 4
            assert patch.polyline[0] == patch.polyline[-1]
            assert len(distinct_vertices(patch.polyline)) >= 3
    
    def test_patch_vertices_come_from_cloud(self):
        """Test that patch vertices are original sample coordinates."""
        from patchwork.cloud.point_cloud import PointCloud
        
        cloud, extractor, _ = self.run_to_completion(seed=9, count=120)
        original = {tuple(p) for p in PointCloud.random(120, 20, 20, 1, seed=9).coordinates().tolist()}
        
        for patch in extractor.accumulator:
            for vertex in patch.polyline:
                assert tuple(vertex) in original
        
        assert np.all(cloud.coordinates() >= 1)
