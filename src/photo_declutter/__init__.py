"""
Photo Declutter - find what can be cleaned up in a photo library.

Groups exact duplicates and bursts of visually similar photos, flags blurry
shots, and recommends smart-clean categories. Deletions are staged first so
they can always be undone.
"""

__version__ = "0.1.0"
__author__ = "Photo Declutter Contributors"

from photo_declutter.core.orchestrator import CancellationToken, ScanOrchestrator
from photo_declutter.core.store import AssetStore, LocalAssetStore

__all__ = ["AssetStore", "CancellationToken", "LocalAssetStore", "ScanOrchestrator", "__version__"]
