"""Smart-clean category scanners."""

from abc import ABC, abstractmethod
from typing import List, Optional

from photo_declutter.core.duplicates import DuplicateGrouper
from photo_declutter.core.models import Asset, Category, CategoryType, MediaType
from photo_declutter.core.store import AssetStore
from photo_declutter.utils.config import MB
from photo_declutter.utils.logger import setup_logger

logger = setup_logger(__name__)


class CategoryScanner(ABC):
    """Produces one self-contained category from the asset store."""

    category_type: CategoryType

    @abstractmethod
    def select(self, store: AssetStore) -> List[Asset]:
        """Return the members of this category, in presentation order."""

    def scan(self, store: AssetStore) -> Category:
        """
        Build the category with a size per member.

        The category may be empty; callers decide whether to report it.
        """
        members = self.select(store)
        sizes = {asset.id: store.size_of(asset) for asset in members}
        category = Category(type=self.category_type, assets=members, sizes=sizes)
        logger.debug(
            f"{self.category_type.label}: {len(members)} assets, {category.total_size} bytes"
        )
        return category


class LargeFileScanner(CategoryScanner):
    """Photos and videos above a per-media-type size threshold."""

    category_type = CategoryType.LARGE_FILES

    def __init__(
        self,
        image_threshold: int = 5 * MB,
        video_threshold: int = 50 * MB,
        limit: Optional[int] = 50,
    ):
        """
        Args:
            image_threshold: Images strictly larger than this qualify, in bytes
            video_threshold: Videos strictly larger than this qualify, in bytes
            limit: Keep only the largest N results (None keeps all)
        """
        self.thresholds = {
            MediaType.IMAGE: image_threshold,
            MediaType.VIDEO: video_threshold,
        }
        self.limit = limit

    def select(self, store: AssetStore) -> List[Asset]:
        sized = []
        for asset in store.enumerate_assets():
            size = store.size_of(asset)
            if size > self.thresholds[asset.media_type]:
                sized.append((size, asset))

        sized.sort(key=lambda item: (-item[0], item[1].id))
        if self.limit is not None:
            sized = sized[: self.limit]
        return [asset for _, asset in sized]


class AgedScreenshotScanner(CategoryScanner):
    """The oldest slice of the screenshot collection."""

    category_type = CategoryType.AGED_SCREENSHOTS

    def __init__(self, fraction: float = 0.01, minimum: int = 1):
        """
        Args:
            fraction: Share of all screenshots to select, oldest first
            minimum: Select at least this many when any screenshot exists
        """
        if not 0.0 <= fraction <= 1.0:
            raise ValueError("fraction must be between 0 and 1")
        self.fraction = fraction
        self.minimum = minimum

    def select(self, store: AssetStore) -> List[Asset]:
        screenshots = store.enumerate_assets(
            media_type=MediaType.IMAGE, predicate=lambda asset: asset.is_screenshot
        )
        if not screenshots:
            return []
        count = max(self.minimum, int(len(screenshots) * self.fraction))
        return screenshots[:count]


class LowResolutionScanner(CategoryScanner):
    """Images narrower or shorter than a pixel floor."""

    category_type = CategoryType.LOW_RESOLUTION

    def __init__(self, min_dimension: int = 1000):
        self.min_dimension = min_dimension

    def select(self, store: AssetStore) -> List[Asset]:
        return store.enumerate_assets(
            media_type=MediaType.IMAGE,
            predicate=self._is_low_resolution,
        )

    def _is_low_resolution(self, asset: Asset) -> bool:
        # Unknown dimensions are reported as 0x0
        if asset.pixel_count == 0:
            return False
        return asset.width < self.min_dimension or asset.height < self.min_dimension


class DuplicateScanner(CategoryScanner):
    """Every exact duplicate except the one copy to keep."""

    category_type = CategoryType.DUPLICATES

    def __init__(self, grouper: Optional[DuplicateGrouper] = None):
        self.grouper = grouper or DuplicateGrouper()

    def select(self, store: AssetStore) -> List[Asset]:
        assets = store.enumerate_assets(media_type=MediaType.IMAGE)
        by_id = {asset.id: asset for asset in assets}

        extras: List[Asset] = []
        for group in self.grouper.group_exact_duplicates(assets):
            # The first member is the representative
            extras.extend(by_id[asset_id] for asset_id in group.asset_ids[1:])
        return extras
