"""
Similarity clustering of photo bursts.

The default strategy is a single chronological pass anchored on a seed: each
unprocessed photo opens a group and pulls in later photos that are close to
it, both visually and in capture time. Members are compared with the seed
only, so two non-seed members of one group may be further apart than the
threshold. The union-find strategy compares every pair inside the time
window instead, at a higher cost per seed.
"""

from collections import defaultdict
from typing import Callable, Dict, List, Mapping, Sequence

from photo_declutter.core.models import Asset, FeatureVector, SimilarityGroup
from photo_declutter.utils.logger import setup_logger

logger = setup_logger(__name__)

DistanceFunction = Callable[[FeatureVector, FeatureVector], float]
RepresentativePolicy = Callable[[Sequence[Asset]], Asset]
ClusterStrategy = Callable[
    [Sequence[Asset], Mapping[str, FeatureVector], float, float, DistanceFunction],
    List[List[Asset]],
]

DEFAULT_DISTANCE_THRESHOLD = 10
DEFAULT_TIME_WINDOW = 3600.0


def hamming_distance(a: FeatureVector, b: FeatureVector) -> float:
    return a.distance(b)


def earliest_captured(members: Sequence[Asset]) -> Asset:
    """Pick the first photo of the burst as the one to keep."""
    return min(members, key=lambda asset: asset.capture_time)


def greedy_seed_clusters(
    assets: Sequence[Asset],
    vectors: Mapping[str, FeatureVector],
    distance_threshold: float,
    time_window: float,
    distance: DistanceFunction = hamming_distance,
) -> List[List[Asset]]:
    """
    Seed-anchored single pass over chronologically sorted assets.

    Args:
        assets: Assets sorted by capture time, oldest first
        vectors: Descriptor per asset id; assets without one are skipped
        distance_threshold: Candidates join when strictly closer than this
        time_window: Maximum seconds between seed and candidate
        distance: Symmetric distance between two descriptors

    Returns:
        Member lists of size two or more, in seed order
    """
    processed = set()
    clusters: List[List[Asset]] = []

    for index, seed in enumerate(assets):
        if seed.id in processed:
            continue
        seed_vector = vectors.get(seed.id)
        if seed_vector is None:
            continue

        members = [seed]
        processed.add(seed.id)

        for position in range(index + 1, len(assets)):
            candidate = assets[position]
            if candidate.id in processed:
                continue
            # Sorted input: nothing further on can be inside the window
            if (candidate.capture_time - seed.capture_time).total_seconds() > time_window:
                break
            candidate_vector = vectors.get(candidate.id)
            if candidate_vector is None:
                continue
            if distance(candidate_vector, seed_vector) < distance_threshold:
                members.append(candidate)
                processed.add(candidate.id)

        if len(members) > 1:
            clusters.append(members)

    return clusters


class UnionFind:
    """Disjoint set union structure with path compression."""

    def __init__(self) -> None:
        self._parent: Dict[str, str] = {}
        self._rank: Dict[str, int] = {}

    def find(self, item: str) -> str:
        """Return the canonical representative for *item*."""
        if item not in self._parent:
            self._parent[item] = item
            self._rank[item] = 0
            return item
        if self._parent[item] != item:
            self._parent[item] = self.find(self._parent[item])
        return self._parent[item]

    def union(self, a: str, b: str) -> None:
        """Merge the sets containing *a* and *b*."""
        root_a = self.find(a)
        root_b = self.find(b)
        if root_a == root_b:
            return
        rank_a = self._rank[root_a]
        rank_b = self._rank[root_b]
        if rank_a < rank_b:
            self._parent[root_a] = root_b
        elif rank_a > rank_b:
            self._parent[root_b] = root_a
        else:
            self._parent[root_b] = root_a
            self._rank[root_a] += 1

    def groups(self) -> Dict[str, List[str]]:
        """Return the current partitioning as a mapping of roots to members."""
        buckets: Dict[str, List[str]] = defaultdict(list)
        for item in self._parent:
            buckets[self.find(item)].append(item)
        return dict(buckets)


def windowed_union_find_clusters(
    assets: Sequence[Asset],
    vectors: Mapping[str, FeatureVector],
    distance_threshold: float,
    time_window: float,
    distance: DistanceFunction = hamming_distance,
) -> List[List[Asset]]:
    """
    Link every pair inside the time window that is close enough, then merge.

    Same arguments and result shape as :func:`greedy_seed_clusters`.
    """
    eligible = [asset for asset in assets if asset.id in vectors]
    position = {asset.id: index for index, asset in enumerate(eligible)}
    uf = UnionFind()

    for index, anchor in enumerate(eligible):
        uf.find(anchor.id)
        for later in range(index + 1, len(eligible)):
            candidate = eligible[later]
            if (candidate.capture_time - anchor.capture_time).total_seconds() > time_window:
                break
            if distance(vectors[candidate.id], vectors[anchor.id]) < distance_threshold:
                uf.union(anchor.id, candidate.id)

    clusters = [
        sorted((eligible[position[asset_id]] for asset_id in members), key=lambda a: position[a.id])
        for members in uf.groups().values()
        if len(members) > 1
    ]
    clusters.sort(key=lambda members: position[members[0].id])
    return clusters


STRATEGIES: Dict[str, ClusterStrategy] = {
    "greedy": greedy_seed_clusters,
    "union_find": windowed_union_find_clusters,
}


class SimilarityClusterer:
    """Groups visually similar photos taken close together in time."""

    def __init__(
        self,
        distance_threshold: float = DEFAULT_DISTANCE_THRESHOLD,
        time_window: float = DEFAULT_TIME_WINDOW,
        strategy: str = "greedy",
        representative_policy: RepresentativePolicy = earliest_captured,
        distance: DistanceFunction = hamming_distance,
    ):
        """
        Initialize the clusterer.

        Args:
            distance_threshold: Maximum (exclusive) descriptor distance to the seed
            time_window: Maximum capture-time gap to the seed, in seconds
            strategy: 'greedy' or 'union_find'
            representative_policy: Chooses the member to keep in each group
            distance: Symmetric distance between two descriptors
        """
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown clustering strategy '{strategy}'")
        if time_window < 0:
            raise ValueError("time_window must not be negative")
        self.distance_threshold = distance_threshold
        self.time_window = time_window
        self.strategy = strategy
        self.representative_policy = representative_policy
        self.distance = distance

    def cluster(
        self,
        assets: Sequence[Asset],
        vectors: Mapping[str, FeatureVector],
    ) -> List[SimilarityGroup]:
        """
        Build disjoint similarity groups.

        Args:
            assets: Assets to cluster; re-sorted by capture time (stable)
            vectors: Descriptor per asset id

        Returns:
            Similarity groups, each with two or more members
        """
        ordered = sorted(assets, key=lambda asset: asset.capture_time)
        clusters = STRATEGIES[self.strategy](
            ordered, vectors, self.distance_threshold, self.time_window, self.distance
        )

        groups = []
        for members in clusters:
            representative = self.representative_policy(members)
            groups.append(
                SimilarityGroup(
                    asset_ids=[asset.id for asset in members],
                    representative=representative.id,
                )
            )

        logger.info(
            f"Found {len(groups)} similar groups among {len(vectors)} analysed photos "
            f"(threshold: {self.distance_threshold}, window: {self.time_window:.0f}s)"
        )
        return groups
