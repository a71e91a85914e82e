"""Test exact duplicate grouping."""

import random

from conftest import make_asset
from photo_declutter.core.duplicates import DuplicateGrouper, duplicate_key


def test_same_second_same_size_are_duplicates():
    assets = [
        make_asset("r1", 0.2, width=4032, height=3024),
        make_asset("r2", 0.7, width=4032, height=3024),
        make_asset("r3", 0.5, width=3024, height=4032),
    ]

    groups = DuplicateGrouper().group_exact_duplicates(assets)

    assert len(groups) == 1
    assert groups[0].asset_ids == ["r1", "r2"]
    assert groups[0].id.endswith("-4032x3024")


def test_key_truncates_to_the_second():
    first = make_asset("a", 10.0)
    second = make_asset("b", 10.999)
    third = make_asset("c", 11.0)

    assert duplicate_key(first) == duplicate_key(second)
    assert duplicate_key(first) != duplicate_key(third)


def test_no_duplicates():
    assets = [make_asset("a", 0), make_asset("b", 1), make_asset("c", 2)]
    assert DuplicateGrouper().group_exact_duplicates(assets) == []


def test_estimated_size_sums_members():
    assets = [
        make_asset("a", 0, byte_size=100),
        make_asset("b", 0, byte_size=200),
    ]

    groups = DuplicateGrouper().group_exact_duplicates(assets)

    assert groups[0].estimated_size == 300


def test_groups_are_newest_first():
    assets = [
        make_asset("old1", 0),
        make_asset("old2", 0),
        make_asset("new1", 500),
        make_asset("new2", 500),
    ]

    groups = DuplicateGrouper().group_exact_duplicates(assets)

    assert [group.asset_ids for group in groups] == [["new1", "new2"], ["old1", "old2"]]


def test_result_independent_of_input_order():
    assets = [make_asset(f"img{i}", i // 3, width=640, height=480) for i in range(12)]
    grouper = DuplicateGrouper()
    expected = [(g.key, g.asset_ids) for g in grouper.group_exact_duplicates(assets)]

    rng = random.Random(3)
    for _ in range(5):
        shuffled = list(assets)
        rng.shuffle(shuffled)
        assert [(g.key, g.asset_ids) for g in grouper.group_exact_duplicates(shuffled)] == expected


def test_every_group_member_shares_the_key():
    assets = [make_asset(f"img{i}", i % 4, width=100 + i % 2, height=100) for i in range(16)]

    for group in DuplicateGrouper().group_exact_duplicates(assets):
        assert len(group.asset_ids) >= 2
        keys = {duplicate_key(a) for a in assets if a.id in group.asset_ids}
        assert keys == {group.key}
