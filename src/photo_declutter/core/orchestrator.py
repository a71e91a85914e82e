"""
Scan orchestration.

A scan runs in three steps:

1. Fan-out: every image is decoded once on a bounded thread pool and its
   descriptor and blur score are stored in a FeatureCache.
2. Barrier: clustering and blur classification start only after every
   extraction finished or failed.
3. Category scanners run concurrently; a failing scanner only loses its own
   category.

The whole scan can be cancelled through a CancellationToken; a cancelled scan
raises ScanCancelledError and returns nothing.
"""

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional, Sequence

from tqdm import tqdm

from photo_declutter.core.blur import BlurClassifier
from photo_declutter.core.categories import (
    AgedScreenshotScanner,
    CategoryScanner,
    DuplicateScanner,
    LargeFileScanner,
    LowResolutionScanner,
)
from photo_declutter.core.clustering import SimilarityClusterer
from photo_declutter.core.errors import (
    DeletionError,
    ExtractionError,
    ScanCancelledError,
    ScannerError,
)
from photo_declutter.core.extractor import FeatureCache, FeatureExtractor
from photo_declutter.core.models import Asset, Category, CategoryType, MediaType, ScanReport
from photo_declutter.core.store import AssetStore
from photo_declutter.utils.config import Config
from photo_declutter.utils.logger import setup_logger

logger = setup_logger(__name__)


class CancellationToken:
    """Thread-safe flag used to abandon a running scan."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ScanCancelledError("Scan was cancelled")


def default_scanners() -> List[CategoryScanner]:
    return [
        DuplicateScanner(),
        AgedScreenshotScanner(),
        LowResolutionScanner(),
        LargeFileScanner(),
    ]


class ScanOrchestrator:
    """Runs one complete, stateless scan over an asset store."""

    def __init__(
        self,
        store: AssetStore,
        extractor: Optional[FeatureExtractor] = None,
        clusterer: Optional[SimilarityClusterer] = None,
        blur_classifier: Optional[BlurClassifier] = None,
        scanners: Optional[Sequence[CategoryScanner]] = None,
        max_workers: int = 4,
        max_assets: Optional[int] = None,
        show_progress: bool = False,
    ):
        """
        Initialize the orchestrator.

        Args:
            store: Asset store to scan
            extractor: Feature extractor (default settings if None)
            clusterer: Similarity clusterer (default settings if None)
            blur_classifier: Blur classifier (default settings if None)
            scanners: Category scanners (all four default scanners if None)
            max_workers: Cap on concurrent extractions
            max_assets: Analyse only the most recent N images (None for all)
            show_progress: Show a progress bar during extraction
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.store = store
        self.extractor = extractor or FeatureExtractor()
        self.clusterer = clusterer or SimilarityClusterer()
        self.blur_classifier = blur_classifier or BlurClassifier()
        self.scanners = list(scanners) if scanners is not None else default_scanners()
        self.max_workers = max_workers
        self.max_assets = max_assets
        self.show_progress = show_progress

    @classmethod
    def from_config(
        cls, store: AssetStore, config: Config, show_progress: bool = False
    ) -> "ScanOrchestrator":
        """Wire every component from configuration settings."""
        scanners: List[CategoryScanner] = [
            DuplicateScanner(),
            AgedScreenshotScanner(
                fraction=config.get("categories.screenshot_fraction", 0.01),
                minimum=config.get("categories.screenshot_minimum", 1),
            ),
            LowResolutionScanner(
                min_dimension=config.get("categories.low_resolution_floor", 1000),
            ),
            LargeFileScanner(
                image_threshold=config.get("categories.large_image_bytes", 5 * 1024 * 1024),
                video_threshold=config.get("categories.large_video_bytes", 50 * 1024 * 1024),
                limit=config.get("categories.large_files_limit", 50),
            ),
        ]
        return cls(
            store,
            extractor=FeatureExtractor(
                target_size=config.get("analysis.target_size", 512),
                blur_threshold=config.get("blur.threshold", 100.0),
            ),
            clusterer=SimilarityClusterer(
                distance_threshold=config.get("similarity.distance_threshold", 10),
                time_window=float(config.get("similarity.time_window_seconds", 3600)),
                strategy=config.get("similarity.strategy", "greedy"),
            ),
            blur_classifier=BlurClassifier(
                inclusion_cutoff=config.get("blur.inclusion_cutoff", 0.3),
                blurry_cutoff=config.get("blur.blurry_cutoff", 0.5),
                very_blurry_cutoff=config.get("blur.very_blurry_cutoff", 0.7),
            ),
            scanners=scanners,
            max_workers=config.get("analysis.max_workers", 4),
            max_assets=config.get("analysis.max_assets"),
            show_progress=show_progress,
        )

    def run(self, token: Optional[CancellationToken] = None) -> ScanReport:
        """
        Run a full scan.

        Args:
            token: Cancellation token; a fresh one is used if None

        Returns:
            ScanReport with non-empty categories, similarity groups and
            blurry photos

        Raises:
            ScanCancelledError: If the token was cancelled during the scan
        """
        token = token or CancellationToken()
        token.raise_if_cancelled()

        assets = self.analysis_assets()
        logger.info(f"Analysing {len(assets)} photos")

        cache = self.extract_features(assets, token)
        vectors = cache.vectors()
        failures = cache.failures()
        if failures:
            logger.warning(f"Could not analyse {len(failures)} photos")

        similarity_groups = self.clusterer.cluster(assets, vectors)
        blur_records = self.blur_classifier.build_records(assets, cache.blur_scores())
        token.raise_if_cancelled()

        categories = self.run_scanners(token)

        report = ScanReport(
            categories=categories,
            similarity_groups=similarity_groups,
            blur_records=blur_records,
            failed_asset_ids=sorted(failures),
        )
        logger.info(
            f"Scan complete: {len(categories)} categories, "
            f"{len(similarity_groups)} similar groups, {len(blur_records)} blurry photos"
        )
        return report

    def analysis_assets(self) -> List[Asset]:
        """Images to extract features from, oldest first."""
        assets = self.store.enumerate_assets(media_type=MediaType.IMAGE)
        if self.max_assets is not None and len(assets) > self.max_assets:
            assets = assets[len(assets) - self.max_assets:]
        return assets

    def extract_features(
        self, assets: Sequence[Asset], token: Optional[CancellationToken] = None
    ) -> FeatureCache:
        """
        Extract every asset's features on the worker pool and wait for all.

        Args:
            assets: Assets to analyse
            token: Cancellation token

        Returns:
            Cache holding a vector and blur score per analysed asset and a
            reason per failed one

        Raises:
            ScanCancelledError: If the token was cancelled before all
                extractions finished
        """
        token = token or CancellationToken()
        cache = FeatureCache()
        if not assets:
            return cache

        executor = ThreadPoolExecutor(max_workers=self.max_workers)
        try:
            futures = {
                executor.submit(self._extract_one, asset, cache, token): asset
                for asset in assets
            }
            with tqdm(
                total=len(futures),
                desc="Analysing photos",
                unit="photo",
                disable=not self.show_progress,
            ) as pbar:
                for future in as_completed(futures):
                    if token.is_cancelled:
                        break
                    future.result()
                    pbar.update(1)
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

        token.raise_if_cancelled()
        return cache

    def _extract_one(self, asset: Asset, cache: FeatureCache, token: CancellationToken) -> None:
        if token.is_cancelled:
            return
        try:
            vector, blur_score = self.extractor.extract(asset, self.store)
        except ExtractionError as e:
            logger.warning(str(e))
            cache.record_failure(asset.id, e.reason)
            return
        cache.record_success(asset.id, vector, blur_score)

    def run_scanners(self, token: Optional[CancellationToken] = None) -> List[Category]:
        """
        Run every category scanner concurrently.

        Failing scanners are logged and skipped; empty categories are dropped.

        Returns:
            Non-empty categories in CategoryType order
        """
        token = token or CancellationToken()
        found: Dict[CategoryType, Category] = {}
        if not self.scanners:
            return []

        with ThreadPoolExecutor(max_workers=len(self.scanners)) as executor:
            futures = {executor.submit(scanner.scan, self.store): scanner for scanner in self.scanners}
            for future in as_completed(futures):
                scanner = futures[future]
                try:
                    category = future.result()
                except Exception as e:
                    logger.error(str(ScannerError(scanner.category_type.value, str(e))))
                    continue
                if category.is_empty():
                    logger.debug(f"No assets in category {scanner.category_type.label}")
                    continue
                found[category.type] = category

        token.raise_if_cancelled()
        order = list(CategoryType)
        return sorted(found.values(), key=lambda category: order.index(category.type))

    def delete(self, asset_ids: Sequence[str]) -> str:
        """
        Ask the store to delete a confirmed id-set.

        Raises:
            DeletionError: Propagated from the store unchanged
        """
        try:
            operation_id = self.store.delete(list(asset_ids))
        except DeletionError as e:
            logger.error(str(e))
            raise
        logger.info(f"Deleted {len(asset_ids)} assets (operation: {operation_id})")
        return operation_id
