"""
Per-tick patch extraction.

One tick clusters the whole remaining cloud, takes the sparsest cluster,
traces its convex hull as a closed polyline and removes every member of
that cluster from the cloud. Anything short of a usable hull leaves the
cloud untouched and is reported as a no-op outcome, never raised.
"""

import numpy as np

from patchwork.cluster.selection import MIN_POLYGON_POINTS, select_sparsest_cluster
from patchwork.models import Patch, TickOutcome, TickResult, distinct_vertices, generate_patch_id
from patchwork.tracer import get_tracer


class PatchExtractor:
    """
    Runs the cluster -> select -> hull -> emit -> remove cycle.

    Owns no geometry itself: the cloud and accumulator are handed in, and
    clustering and hull computation are delegated to the given oracles.
    Not thread-safe; callers serialize ticks (see TickScheduler).
    """

    def __init__(self, cloud, accumulator, clusterer, hull, cluster_count=3,
                 min_cluster_size=MIN_POLYGON_POINTS):
        if cluster_count < 1:
            raise ValueError(f"cluster_count must be >= 1, got {cluster_count}")
        self.cloud = cloud
        self.accumulator = accumulator
        self.clusterer = clusterer
        self.hull = hull
        self.cluster_count = cluster_count
        self.min_cluster_size = min_cluster_size
        self.ticks_run = 0

    def is_exhausted(self):
        """
        True once too few points remain to cluster.

        The cloud never grows, so this state is permanent.
        """
        return self.cloud.size() <= self.cluster_count

    def tick(self):
        """Run one extraction step and return its TickResult."""
        tracer = get_tracer()

        tick_index = self.ticks_run
        self.ticks_run += 1
        before = self.cloud.size()

        if self.is_exhausted():
            return self._result(tick_index, TickOutcome.INSUFFICIENT_DATA, before)

        handles = self.cloud.handles()
        coords = self.cloud.coordinates()

        groups = self.clusterer.cluster(coords, self.cluster_count)
        sizes = [len(g) for g in groups]

        selected = select_sparsest_cluster(groups, self.min_cluster_size)
        if selected is None:
            tracer.event(f"tick {tick_index}: no cluster with >= {self.min_cluster_size} points",
                         level="DEBUG", sizes=sizes)
            return self._result(tick_index, TickOutcome.NO_QUALIFYING_CLUSTER, before, sizes)

        selected = np.asarray(selected, dtype=np.int64)
        positions = coords[selected]

        edges = self.hull.hull(positions)
        path = [positions[i].tolist() for i in edges]

        if len(edges) <= 2 or len(distinct_vertices(path)) < 3:
            tracer.event(f"tick {tick_index}: degenerate hull", level="DEBUG",
                         vertices=len(edges), members=len(selected))
            return self._result(tick_index, TickOutcome.DEGENERATE_HULL, before, sizes)

        # close the loop
        path.append(list(path[0]))

        patch = Patch(
            patch_id=generate_patch_id(path),
            tick=tick_index,
            polyline=path,
            member_count=len(selected),
        )
        self.accumulator.append(patch)

        # all cluster members go, not just the hull vertices
        self.cloud.remove(handles[selected])

        tracer.event(f"tick {tick_index}: extracted {patch.patch_id}", level="DEBUG",
                     vertices=patch.vertex_count, members=patch.member_count,
                     remaining=self.cloud.size())

        return self._result(tick_index, TickOutcome.EXTRACTED, before, sizes, patch.patch_id)

    def _result(self, tick_index, outcome, before, sizes=None, patch_id=None):
        return TickResult(
            tick=tick_index,
            outcome=outcome,
            points_before=before,
            points_after=self.cloud.size(),
            patch_id=patch_id,
            cluster_sizes=sizes or [],
        )
