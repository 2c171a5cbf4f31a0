"""
Point cloud storage for patchwork.

Points live in a fixed numpy backing store and are addressed by stable
integer handles. A handle is the identity of a point: two points with equal
coordinates are still distinct entities. Removal drops handles from the
live set and never touches the backing store, so the cloud only shrinks.
"""

import numpy as np

from patchwork.config import ConfigurationError
from patchwork.tracer import get_tracer, trace


class PointCloud:
    """
    Mutable set of 2D points addressed by handle.

    The live handles keep their original (creation) order, so index i of
    `coordinates()` always corresponds to index i of `handles()`.
    """

    def __init__(self, coords):
        coords = np.array(coords, dtype=float)
        if coords.size == 0:
            coords = coords.reshape(0, 2)
        if coords.ndim != 2 or coords.shape[1] != 2:
            raise ValueError(f"Expected an (N, 2) array of points, got shape {coords.shape}")
        if not np.all(np.isfinite(coords)):
            raise ValueError("Point coordinates must be finite")

        self._store = coords
        self._store.setflags(write=False)
        self._alive = np.arange(len(coords), dtype=np.int64)

    @classmethod
    @trace(label="point_cloud_random")
    def random(cls, count, width, height, margin, seed=None):
        """
        Sample `count` points uniformly from the margin-inset drawing area.

        Coordinates are drawn from [margin, width - margin] x
        [margin, height - margin]. Raises ConfigurationError when the margin
        leaves no area to sample from.
        """
        if margin * 2 >= width or margin * 2 >= height:
            raise ConfigurationError(
                f"Margin {margin} leaves no sampling area on a {width}x{height} canvas"
            )
        if count < 0:
            raise ConfigurationError(f"Point count must be non-negative, got {count}")

        rng = np.random.default_rng(seed)
        xs = rng.uniform(margin, width - margin, size=count)
        ys = rng.uniform(margin, height - margin, size=count)

        get_tracer().event(f"Sampled {count} points", level="DEBUG", seed=seed)
        return cls(np.column_stack([xs, ys]))

    def size(self):
        """Current number of live points."""
        return int(self._alive.size)

    def __len__(self):
        return self.size()

    def __contains__(self, handle):
        return bool(np.any(self._alive == handle))

    @property
    def initial_size(self):
        """Number of points the cloud was created with."""
        return int(self._store.shape[0])

    def handles(self):
        """Handles of the live points, in creation order."""
        return self._alive.copy()

    def coordinates(self, handles=None):
        """
        Coordinates of the live points as an (N, 2) array.

        With `handles`, returns the coordinates of exactly those handles in
        the given order, whether or not they are still live.
        """
        if handles is None:
            return self._store[self._alive]
        return self._store[np.asarray(handles, dtype=np.int64)]

    def remove(self, handles):
        """
        Remove every point whose handle is in `handles`.

        Handles that are not live are ignored. Returns the number of points
        actually removed.
        """
        handles = np.asarray(handles, dtype=np.int64).ravel()
        if handles.size == 0 or self._alive.size == 0:
            return 0

        doomed = np.isin(self._alive, handles)
        removed = int(np.count_nonzero(doomed))
        if removed:
            self._alive = self._alive[~doomed]
        return removed

    def __repr__(self):
        return f"PointCloud(size={self.size()}, initial={self.initial_size})"
