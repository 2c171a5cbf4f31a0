"""
Clustering and hull capabilities used by the patch extractor.

The extractor only relies on the two protocols below. The default
implementations wrap scikit-learn's k-means and scipy's Qhull binding.
"""

import warnings
from typing import List, Protocol

import numpy as np
from scipy.spatial import ConvexHull, QhullError
from sklearn.cluster import KMeans
from sklearn.exceptions import ConvergenceWarning


class ClusteringOracle(Protocol):
    """Partitions a point set into at most k groups of indices."""

    def cluster(self, points: np.ndarray, k: int) -> List[List[int]]:
        ...


class HullOracle(Protocol):
    """Returns the ordered boundary vertex indices of a point set."""

    def hull(self, points: np.ndarray) -> List[int]:
        ...


class KMeansClusterer:
    """
    k-means partitioning with scikit-learn.

    Each call draws a fresh random state from its own generator, so repeated
    calls on the same input may disagree while a seeded run as a whole is
    reproducible.
    """

    def __init__(self, max_iter=300, n_init=1, seed=None):
        self.max_iter = max_iter
        self.n_init = n_init
        self._rng = np.random.default_rng(seed)

    def cluster(self, points, k):
        points = np.asarray(points, dtype=float)
        if len(points) == 0:
            return []

        k = min(k, len(points))
        model = KMeans(
            n_clusters=k,
            n_init=self.n_init,
            max_iter=self.max_iter,
            random_state=int(self._rng.integers(0, 2**31 - 1)),
        )

        # Fewer distinct points than k is legal here; such groups come back empty
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", ConvergenceWarning)
            labels = model.fit_predict(points)

        groups = [np.flatnonzero(labels == label).tolist() for label in range(k)]
        return [g for g in groups if g]


class ConvexHullOracle:
    """Convex hull via scipy.spatial.ConvexHull (counter-clockwise order)."""

    def hull(self, points):
        points = np.asarray(points, dtype=float)
        if len(points) < 3:
            return []

        try:
            return ConvexHull(points).vertices.tolist()
        except QhullError:
            # flat or duplicate input has no 2D hull
            return []

