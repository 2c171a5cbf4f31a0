"""Pytest fixtures for patchwork tests."""

import tempfile

import numpy as np
import pytest


class FixedGroupsClusterer:
    """Clustering stub that replays a scripted list of index groups per call."""

    def __init__(self, *calls):
        self.calls = list(calls)
        self.seen_sizes = []

    def cluster(self, points, k):
        self.seen_sizes.append(len(points))
        if len(self.calls) > 1:
            return self.calls.pop(0)
        return self.calls[0]


class AllIndicesHull:
    """Hull stub that treats every input point as a boundary vertex."""

    def hull(self, points):
        return list(range(len(points)))


class FixedHull:
    """Hull stub that always returns the same indices."""

    def __init__(self, indices):
        self.indices = list(indices)

    def hull(self, points):
        return list(self.indices)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def default_config():
    """Create default configuration."""
    from patchwork.config import PatchworkConfig
    return PatchworkConfig()


@pytest.fixture
def small_config():
    """A configuration small enough for an end-to-end run with real oracles."""
    from patchwork.config import PatchworkConfig

    config = PatchworkConfig()
    config.canvas.width = 10.0
    config.canvas.height = 10.0
    config.canvas.margin = 1.0
    config.cloud.point_count = 300
    config.cloud.seed = 7
    config.extraction.cluster_count = 3
    config.scheduler.max_idle_ticks = 50
    return config


@pytest.fixture
def ten_point_cloud():
    """Ten distinct points in general position inside a 10x10 canvas."""
    from patchwork.cloud.point_cloud import PointCloud

    angles = np.linspace(0, 2 * np.pi, 10, endpoint=False)
    radii = np.array([3.0, 3.5, 2.5, 3.2, 2.8, 3.9, 2.2, 3.6, 2.9, 3.3])
    coords = np.column_stack([5 + radii * np.cos(angles), 5 + radii * np.sin(angles)])
    return PointCloud(coords)


@pytest.fixture
def stubs():
    """Expose stub oracle classes to tests."""
    return {
        "groups": FixedGroupsClusterer,
        "all_hull": AllIndicesHull,
        "fixed_hull": FixedHull,
    }
