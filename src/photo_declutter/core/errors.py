"""
Exception hierarchy for photo-declutter.

Per-asset and per-scanner failures are contained where they happen; only
deletion failures and cancellation reach the caller.
"""

from typing import Iterable, Optional


class PhotoDeclutterError(Exception):
    """Base exception for all photo-declutter errors."""
    pass


class ExtractionError(PhotoDeclutterError):
    """Raised when an asset's image cannot be decoded or analysed."""

    def __init__(self, asset_id: str, reason: str):
        super().__init__(f"Extraction failed for {asset_id}: {reason}")
        self.asset_id = asset_id
        self.reason = reason


class ScannerError(PhotoDeclutterError):
    """Raised when a category scanner cannot produce its category."""

    def __init__(self, category: str, reason: str):
        super().__init__(f"Scanner '{category}' failed: {reason}")
        self.category = category
        self.reason = reason


class DeletionError(PhotoDeclutterError):
    """Raised when the asset store rejects or fails a batch delete."""

    def __init__(self, asset_ids: Iterable[str], reason: str, operation_id: Optional[str] = None):
        self.asset_ids = list(asset_ids)
        self.reason = reason
        self.operation_id = operation_id
        super().__init__(f"Could not delete {len(self.asset_ids)} assets: {reason}")


class ScanCancelledError(PhotoDeclutterError):
    """Raised when a scan is cancelled before it completes."""
    pass
