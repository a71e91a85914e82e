"""
Asset store boundary.

The engine only enumerates, fetches reduced-size images, reads sizes and asks
for batch deletes. ``LocalAssetStore`` provides those operations over
directories on disk.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from PIL import Image, ImageOps

from photo_declutter.core.errors import DeletionError
from photo_declutter.core.metadata import read_asset
from photo_declutter.core.models import Asset, MediaType, sort_chronologically
from photo_declutter.core.scanner import MediaScanner
from photo_declutter.core.staging import SafeAssetDeleter
from photo_declutter.utils.config import Config
from photo_declutter.utils.logger import setup_logger

logger = setup_logger(__name__)

AssetPredicate = Callable[[Asset], bool]


class AssetStore(ABC):
    """Operations the analysis engine needs from a photo library."""

    @abstractmethod
    def enumerate_assets(
        self,
        media_type: Optional[MediaType] = None,
        predicate: Optional[AssetPredicate] = None,
    ) -> List[Asset]:
        """
        List assets, oldest capture first.

        Args:
            media_type: Only return assets of this type
            predicate: Only return assets for which this returns True
        """

    @abstractmethod
    def fetch_image(self, asset_id: str, target_size: int) -> Image.Image:
        """
        Decode an asset's image at (at most) ``target_size`` pixels square.

        Raises:
            KeyError: If the asset is unknown
            OSError: If the image data cannot be decoded
        """

    @abstractmethod
    def byte_size(self, asset_id: str) -> Optional[int]:
        """Exact size in bytes, or None when the store cannot tell."""

    @abstractmethod
    def delete(self, asset_ids: Sequence[str]) -> str:
        """
        Delete assets as one batch. Either all of them go or none do.

        Returns:
            Operation identifier

        Raises:
            DeletionError: If the batch was rejected or failed
        """

    def size_of(self, asset: Asset) -> int:
        """Exact size when the store knows it, else the asset's estimate."""
        size = self.byte_size(asset.id)
        return size if size is not None else asset.estimated_size


@dataclass(frozen=True)
class DateRange:
    """Inclusive capture-time window used to restrict enumeration."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def __contains__(self, asset: Asset) -> bool:
        if self.start is not None and asset.capture_time < self.start:
            return False
        if self.end is not None and asset.capture_time > self.end:
            return False
        return True


class LocalAssetStore(AssetStore):
    """Asset store over one or more directories of photos and videos."""

    def __init__(
        self,
        roots: Sequence[Path],
        config: Config,
        recursive: bool = True,
        date_range: Optional[DateRange] = None,
        show_progress: bool = False,
    ):
        """
        Initialize the store.

        Args:
            roots: Directories holding the library
            config: Configuration instance (staging and protected folders)
            recursive: Recursively scan subdirectories
            date_range: Only expose assets captured inside this window
            show_progress: Show progress bars while discovering files
        """
        self.roots = [Path(root) for root in roots]
        self.config = config
        self.recursive = recursive
        self.date_range = date_range
        self.scanner = MediaScanner(show_progress=show_progress)
        self.deleter = SafeAssetDeleter(config)
        self._assets: Optional[Dict[str, Asset]] = None
        self._lock = threading.Lock()

    def refresh(self) -> None:
        """Forget the cached snapshot so the next call re-reads the disk."""
        with self._lock:
            self._assets = None

    def _snapshot(self) -> Dict[str, Asset]:
        # Caller holds self._lock
        if self._assets is None:
            self._assets = self._index()
        return self._assets

    def _index(self) -> Dict[str, Asset]:
        assets: Dict[str, Asset] = {}
        for path in self.scanner.scan_multiple_directories(self.roots, self.recursive):
            media_type = self.scanner.media_type(path)
            try:
                asset = read_asset(path, media_type)
            except OSError as e:
                logger.warning(f"Skipping unreadable file {path}: {e}")
                continue
            if self.date_range is not None and asset not in self.date_range:
                continue
            assets[asset.id] = asset
        logger.info(f"Indexed {len(assets)} assets")
        return assets

    def enumerate_assets(
        self,
        media_type: Optional[MediaType] = None,
        predicate: Optional[AssetPredicate] = None,
    ) -> List[Asset]:
        with self._lock:
            assets = list(self._snapshot().values())
        selected = [
            asset
            for asset in assets
            if (media_type is None or asset.media_type == media_type)
            and (predicate is None or predicate(asset))
        ]
        return sort_chronologically(selected)

    def get(self, asset_id: str) -> Asset:
        with self._lock:
            return self._snapshot()[asset_id]

    def fetch_image(self, asset_id: str, target_size: int) -> Image.Image:
        """
        Decode an asset as a ``target_size`` square RGB image.

        JPEG files are downscaled while decoding. Other formats (PNG, WebP,
        TIFF, ...) are decoded at full size, then shrunk right away so only
        the reduced copy is transposed and converted.
        """
        asset = self.get(asset_id)
        with Image.open(asset.path) as img:
            img.draft("RGB", (target_size, target_size))
            img.thumbnail((target_size, target_size))
            img = ImageOps.exif_transpose(img)
            img = img.convert("RGB")
            return img.resize((target_size, target_size), Image.Resampling.BILINEAR)

    def byte_size(self, asset_id: str) -> Optional[int]:
        asset = self.get(asset_id)
        if asset.path is None:
            return asset.byte_size
        try:
            return asset.path.stat().st_size
        except OSError:
            return None

    def delete(self, asset_ids: Sequence[str]) -> str:
        # A repeated id would stage the same file twice
        asset_ids = list(dict.fromkeys(asset_ids))
        with self._lock:
            snapshot = self._snapshot()
            unknown = [asset_id for asset_id in asset_ids if asset_id not in snapshot]
            paths = [snapshot[asset_id].path for asset_id in asset_ids if asset_id in snapshot]
        if unknown:
            raise DeletionError(asset_ids, f"{len(unknown)} ids are not in this library: {unknown[0]}")

        operation_id = self.deleter.stage_for_deletion(
            paths, reason="cleanup", metadata={"asset_ids": asset_ids}
        )
        with self._lock:
            for asset_id in asset_ids:
                self._snapshot().pop(asset_id, None)
        return operation_id
