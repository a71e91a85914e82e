"""Exact duplicate detection from structural metadata."""

import math
from collections import defaultdict
from typing import Dict, Iterable, List

from photo_declutter.core.models import Asset, DuplicateGroup, DuplicateKey, sort_chronologically
from photo_declutter.utils.logger import setup_logger

logger = setup_logger(__name__)


def duplicate_key(asset: Asset) -> DuplicateKey:
    """
    Key shared by structurally identical captures.

    Capture time truncated to the second plus pixel dimensions. Pixel
    content is never looked at.
    """
    return (math.floor(asset.capture_time.timestamp()), asset.width, asset.height)


class DuplicateGrouper:
    """Groups assets that share an exact duplicate key."""

    def group_exact_duplicates(self, assets: Iterable[Asset]) -> List[DuplicateGroup]:
        """
        Find exact duplicates in a single pass.

        Args:
            assets: Assets to group, in any order

        Returns:
            One DuplicateGroup per key with two or more members. Members are
            ordered by (capture time, id) and groups newest first, so the
            result does not depend on the input order.
        """
        buckets: Dict[DuplicateKey, List[Asset]] = defaultdict(list)
        for asset in assets:
            buckets[duplicate_key(asset)].append(asset)

        groups = []
        for key, members in buckets.items():
            if len(members) < 2:
                continue
            members = sort_chronologically(members)
            groups.append(
                DuplicateGroup(
                    key=key,
                    asset_ids=[asset.id for asset in members],
                    estimated_size=sum(asset.estimated_size for asset in members),
                )
            )

        groups.sort(key=lambda group: group.key, reverse=True)
        logger.info(f"Found {len(groups)} exact duplicate groups")
        return groups
