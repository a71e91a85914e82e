"""Test similarity clustering."""

import itertools
import random

import pytest

from conftest import make_asset
from photo_declutter.core.clustering import (
    SimilarityClusterer,
    UnionFind,
    greedy_seed_clusters,
)
from photo_declutter.core.models import FeatureVector


def vector(*ones: int, length: int = 64) -> FeatureVector:
    """Vector with bits set at the given positions."""
    return FeatureVector(tuple(1 if i in ones else 0 for i in range(length)))


def test_burst_forms_one_group():
    """Three shots two seconds apart and five bits apart end up together."""
    assets = [make_asset("p1", 0), make_asset("p2", 2), make_asset("p3", 4)]
    vectors = {
        "p1": vector(),
        "p2": vector(0, 1, 2, 3, 4),
        "p3": vector(10, 11, 12, 13, 14),
    }

    groups = SimilarityClusterer().cluster(assets, vectors)

    assert len(groups) == 1
    assert groups[0].asset_ids == ["p1", "p2", "p3"]
    assert groups[0].representative == "p1"
    assert groups[0].marked_for_removal == {"p2", "p3"}


def test_time_window_separates_identical_photos():
    """Identical descriptors two hours apart are not grouped."""
    assets = [make_asset("q1", 0), make_asset("q2", 7200)]
    vectors = {"q1": vector(3), "q2": vector(3)}

    assert SimilarityClusterer().cluster(assets, vectors) == []


@pytest.mark.parametrize("gap,grouped", [(3599.9, True), (3600.0, True), (3600.1, False)])
def test_time_window_boundary(gap, grouped):
    assets = [make_asset("a", 0), make_asset("b", gap)]
    vectors = {"a": vector(), "b": vector()}

    groups = SimilarityClusterer().cluster(assets, vectors)

    assert (len(groups) == 1) is grouped


@pytest.mark.parametrize("bits,grouped", [(9, True), (10, False)])
def test_distance_threshold_is_exclusive(bits, grouped):
    assets = [make_asset("a", 0), make_asset("b", 1)]
    vectors = {"a": vector(), "b": vector(*range(bits))}

    groups = SimilarityClusterer(distance_threshold=10).cluster(assets, vectors)

    assert (len(groups) == 1) is grouped


def test_members_compared_to_seed_only():
    """b and c are each close to a but far from each other; the seed holds them."""
    assets = [make_asset("a", 0), make_asset("b", 1), make_asset("c", 2)]
    vectors = {
        "a": vector(),
        "b": vector(0, 1, 2, 3, 4, 5, 6),
        "c": vector(10, 11, 12, 13, 14, 15, 16),
    }

    groups = SimilarityClusterer().cluster(assets, vectors)

    assert len(groups) == 1
    assert set(groups[0].asset_ids) == {"a", "b", "c"}
    assert vectors["b"].distance(vectors["c"]) >= 10


def test_assets_without_vectors_are_skipped():
    assets = [make_asset("a", 0), make_asset("failed", 1), make_asset("b", 2)]
    vectors = {"a": vector(), "b": vector(1)}

    groups = SimilarityClusterer().cluster(assets, vectors)

    assert len(groups) == 1
    assert groups[0].asset_ids == ["a", "b"]


def test_input_order_does_not_matter():
    assets = [make_asset("c", 4), make_asset("a", 0), make_asset("b", 2)]
    vectors = {"a": vector(), "b": vector(1), "c": vector(2)}

    groups = SimilarityClusterer().cluster(assets, vectors)

    assert groups[0].asset_ids == ["a", "b", "c"]


def test_groups_partition_analysed_assets():
    """Random library: groups are disjoint, of size >= 2 and within the window of the first member."""
    rng = random.Random(7)
    assets = [make_asset(f"img{i:03d}", rng.uniform(0, 20000)) for i in range(120)]
    vectors = {
        asset.id: vector(*rng.sample(range(64), rng.randint(0, 8))) for asset in assets
    }
    by_id = {asset.id: asset for asset in assets}

    groups = SimilarityClusterer().cluster(assets, vectors)

    seen = set()
    for group in groups:
        assert len(group.asset_ids) >= 2
        assert not seen.intersection(group.asset_ids)
        seen.update(group.asset_ids)
        seed = by_id[group.asset_ids[0]]
        for asset_id in group.asset_ids[1:]:
            member = by_id[asset_id]
            gap = (member.capture_time - seed.capture_time).total_seconds()
            assert 0 <= gap <= 3600
            assert vectors[asset_id].distance(vectors[seed.id]) < 10


def test_empty_input():
    assert SimilarityClusterer().cluster([], {}) == []


def test_custom_representative_policy():
    assets = [make_asset("small", 0, width=100, height=100), make_asset("big", 1)]
    vectors = {"small": vector(), "big": vector()}

    def largest(members):
        return max(members, key=lambda asset: asset.pixel_count)

    groups = SimilarityClusterer(representative_policy=largest).cluster(assets, vectors)

    assert groups[0].representative == "big"
    assert groups[0].marked_for_removal == {"small"}


def test_union_find_strategy_links_chains():
    """a-b and b-c are close, a-c is not: union-find joins all three."""
    assets = [make_asset("x", 0), make_asset("a", 1), make_asset("b", 2), make_asset("c", 3)]
    vectors = {
        "x": vector(*range(30, 60)),
        "a": vector(),
        "b": vector(0, 1, 2, 3, 4, 5),
        "c": vector(0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11),
    }

    greedy = SimilarityClusterer(strategy="greedy").cluster(assets, vectors)
    linked = SimilarityClusterer(strategy="union_find").cluster(assets, vectors)

    assert [g.asset_ids for g in greedy] == [["a", "b"]]
    assert [g.asset_ids for g in linked] == [["a", "b", "c"]]
    assert linked[0].representative == "a"


def test_unknown_strategy():
    with pytest.raises(ValueError):
        SimilarityClusterer(strategy="kmeans")


def test_custom_distance_function():
    assets = [make_asset("a", 0), make_asset("b", 1)]
    vectors = {"a": vector(), "b": vector(*range(40))}

    clusters = greedy_seed_clusters(
        assets, vectors, distance_threshold=10, time_window=3600, distance=lambda x, y: 0
    )

    assert [[asset.id for asset in members] for members in clusters] == [["a", "b"]]


def test_union_find_groups():
    uf = UnionFind()
    for a, b in [("1", "2"), ("3", "4"), ("2", "4")]:
        uf.union(a, b)
    uf.find("5")

    groups = sorted(sorted(members) for members in uf.groups().values())

    assert groups == [["1", "2", "3", "4"], ["5"]]
    assert all(uf.find(a) == uf.find(b) for a, b in itertools.combinations("1234", 2))


def test_five_shot_burst_within_ten_seconds():
    """Five photos within ten seconds, all mutually close, form one group of five."""
    assets = [make_asset(f"burst{i}", seconds) for i, seconds in enumerate([9.5, 0, 2.5, 7, 4])]
    vectors = {asset.id: vector(*range(i)) for i, asset in enumerate(assets)}

    groups = SimilarityClusterer().cluster(assets, vectors)

    assert len(groups) == 1
    assert sorted(groups[0].asset_ids) == sorted(a.id for a in assets)
    assert groups[0].representative == "burst1"
    assert groups[0].marked_for_removal == {"burst0", "burst2", "burst3", "burst4"}
