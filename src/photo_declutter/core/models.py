"""Scan-scoped data model: assets, descriptors, groups and report."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

# Fallback when neither the exact size nor the dimensions are known
DEFAULT_ESTIMATED_SIZE = 2 * 1024 * 1024


class MediaType(str, Enum):
    """Kind of media an asset holds."""

    IMAGE = "image"
    VIDEO = "video"


@dataclass(frozen=True)
class Asset:
    """A photo or video as seen by the engine. Owned by the asset store."""

    id: str
    capture_time: datetime
    width: int
    height: int
    byte_size: Optional[int] = None
    media_type: MediaType = MediaType.IMAGE
    is_screenshot: bool = False
    path: Optional[Path] = None

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def estimated_size(self) -> int:
        """
        Exact byte size when known, otherwise an estimate.

        JPEG output averages about half a byte per pixel, so the estimate is
        ``width * height // 2``.
        """
        if self.byte_size is not None:
            return self.byte_size
        if self.pixel_count > 0:
            return self.pixel_count // 2
        return DEFAULT_ESTIMATED_SIZE


@dataclass(frozen=True)
class FeatureVector:
    """Fixed-length bit descriptor of an image's visual content."""

    bits: Tuple[int, ...]

    @classmethod
    def from_hex(cls, value: str, length: int = 64) -> "FeatureVector":
        """Build a vector from a hexadecimal string of *length* bits."""
        number = int(value, 16)
        return cls(tuple((number >> shift) & 1 for shift in range(length - 1, -1, -1)))

    def to_hex(self) -> str:
        number = 0
        for bit in self.bits:
            number = (number << 1) | bit
        width = (len(self.bits) + 3) // 4
        return format(number, f"0{width}x")

    def __len__(self) -> int:
        return len(self.bits)

    def distance(self, other: "FeatureVector") -> int:
        """Hamming distance to *other*; lower means more visually similar."""
        if len(self.bits) != len(other.bits):
            raise ValueError(
                f"Cannot compare descriptors of length {len(self.bits)} and {len(other.bits)}"
            )
        return sum(a != b for a, b in zip(self.bits, other.bits))


@dataclass
class SimilarityGroup:
    """A burst of visually similar photos with one representative."""

    asset_ids: List[str]
    representative: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    marked_for_removal: Optional[Set[str]] = None

    def __post_init__(self) -> None:
        if len(self.asset_ids) < 2:
            raise ValueError("A similarity group needs at least two members")
        if self.representative not in self.asset_ids:
            raise ValueError(f"Representative {self.representative} is not a member")
        if self.marked_for_removal is None:
            self.marked_for_removal = {
                asset_id for asset_id in self.asset_ids if asset_id != self.representative
            }

    @property
    def keep_ids(self) -> List[str]:
        return [asset_id for asset_id in self.asset_ids if asset_id not in self.marked_for_removal]

    def toggle_removal(self, asset_id: str) -> bool:
        """
        Flip the removal mark of a member.

        Returns:
            True if the member is now marked for removal
        """
        if asset_id not in self.asset_ids:
            raise KeyError(asset_id)
        if asset_id in self.marked_for_removal:
            self.marked_for_removal.discard(asset_id)
            return False
        self.marked_for_removal.add(asset_id)
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "asset_ids": list(self.asset_ids),
            "representative": self.representative,
            "marked_for_removal": sorted(self.marked_for_removal),
        }


DuplicateKey = Tuple[int, int, int]


@dataclass
class DuplicateGroup:
    """Assets sharing one exact (second, width, height) key."""

    key: DuplicateKey
    asset_ids: List[str]
    estimated_size: int = 0

    @property
    def id(self) -> str:
        timestamp, width, height = self.key
        return f"{timestamp}-{width}x{height}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "asset_ids": list(self.asset_ids),
            "estimated_size": self.estimated_size,
        }


class BlurSeverity(str, Enum):
    """How blurry a photo is."""

    SLIGHTLY_BLURRY = "Slightly Blurry"
    BLURRY = "Blurry"
    VERY_BLURRY = "Very Blurry"


@dataclass(frozen=True)
class BlurRecord:
    """A photo whose blur score passed the inclusion cutoff."""

    asset_id: str
    blur_score: float
    severity: BlurSeverity
    estimated_size: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "blur_score": round(self.blur_score, 4),
            "severity": self.severity.value,
            "estimated_size": self.estimated_size,
        }


class CategoryType(str, Enum):
    """Smart-clean categories, in report order."""

    DUPLICATES = "duplicates"
    AGED_SCREENSHOTS = "aged_screenshots"
    LOW_RESOLUTION = "low_resolution"
    LARGE_FILES = "large_files"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


@dataclass
class Category:
    """One smart-clean recommendation with its reclaimable size."""

    type: CategoryType
    assets: List[Asset] = field(default_factory=list)
    sizes: Dict[str, int] = field(default_factory=dict)

    @property
    def asset_ids(self) -> List[str]:
        return [asset.id for asset in self.assets]

    @property
    def total_size(self) -> int:
        return sum(self.sizes.get(asset.id, asset.estimated_size) for asset in self.assets)

    def is_empty(self) -> bool:
        return not self.assets

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "asset_ids": self.asset_ids,
            "sizes": {asset.id: self.sizes.get(asset.id, asset.estimated_size) for asset in self.assets},
            "total_size": self.total_size,
        }


@dataclass
class ScanReport:
    """Everything one scan produced. Discarded or replaced by the next scan."""

    categories: List[Category] = field(default_factory=list)
    similarity_groups: List[SimilarityGroup] = field(default_factory=list)
    blur_records: List[BlurRecord] = field(default_factory=list)
    failed_asset_ids: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def total_reclaimable(self) -> int:
        """Bytes freed by removing every category member. An asset listed in
        several categories counts once."""
        sizes: Dict[str, int] = {}
        for category in self.categories:
            for asset in category.assets:
                sizes.setdefault(asset.id, category.sizes.get(asset.id, asset.estimated_size))
        return sum(sizes.values())

    def category(self, category_type: CategoryType) -> Optional[Category]:
        return next((c for c in self.categories if c.type == category_type), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created_at": self.created_at.isoformat(),
            "total_reclaimable": self.total_reclaimable,
            "categories": [category.to_dict() for category in self.categories],
            "similarity_groups": [group.to_dict() for group in self.similarity_groups],
            "blur_records": [record.to_dict() for record in self.blur_records],
            "failed_asset_ids": list(self.failed_asset_ids),
        }


def sort_chronologically(assets: Sequence[Asset]) -> List[Asset]:
    """Return *assets* ordered by capture time, ties broken by id."""
    return sorted(assets, key=lambda asset: (asset.capture_time, asset.id))
