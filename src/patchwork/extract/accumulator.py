"""
Append-only store of extracted patches.
"""


class PolylineAccumulator:
    """
    Ordered, append-only collection of patches.

    A single writer appends; readers take `snapshot()`, which copies a
    fixed-length prefix and is therefore consistent even while the writer
    keeps appending. Patches are frozen models, so a reader never sees a
    partially built one.
    """

    def __init__(self):
        self._patches = []

    def append(self, patch):
        self._patches.append(patch)

    def snapshot(self):
        """Tuple of the patches appended so far."""
        count = len(self._patches)
        return tuple(self._patches[:count])

    def polylines(self):
        """Polylines of the current snapshot, in accumulation order."""
        return [patch.polyline for patch in self.snapshot()]

    def __len__(self):
        return len(self._patches)

    def __iter__(self):
        return iter(self.snapshot())

    def __getitem__(self, index):
        return self._patches[index]
