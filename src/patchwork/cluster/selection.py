"""
Cluster selection policy.

Each tick carves out the sparsest usable cluster: groups too small to form
a polygon are dropped, and the smallest survivor wins.
"""

MIN_POLYGON_POINTS = 3


def select_sparsest_cluster(groups, min_size=MIN_POLYGON_POINTS):
    """
    Pick the group with the fewest points among those with at least
    `min_size` members.

    Ties go to the group that comes first in `groups`. Returns None when no
    group qualifies.
    """
    candidates = [g for g in groups if len(g) >= min_size]
    if not candidates:
        return None

    # sorted() is stable, so the first of equally sized groups stays first
    return sorted(candidates, key=len)[0]
