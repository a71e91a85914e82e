"""Core functionality for photo analysis, grouping and safe deletion."""

from photo_declutter.core.blur import BlurClassifier
from photo_declutter.core.clustering import SimilarityClusterer
from photo_declutter.core.duplicates import DuplicateGrouper
from photo_declutter.core.extractor import FeatureExtractor
from photo_declutter.core.orchestrator import CancellationToken, ScanOrchestrator
from photo_declutter.core.staging import SafeAssetDeleter
from photo_declutter.core.store import AssetStore, LocalAssetStore

__all__ = [
    "AssetStore",
    "BlurClassifier",
    "CancellationToken",
    "DuplicateGrouper",
    "FeatureExtractor",
    "LocalAssetStore",
    "SafeAssetDeleter",
    "ScanOrchestrator",
    "SimilarityClusterer",
]
