"""
Per-asset feature extraction.

One reduced-size decode per asset yields both outputs: a perceptual-hash
descriptor for similarity clustering and a Laplacian-variance blur score.
"""

import threading
from typing import Dict, Tuple

import cv2
import imagehash
import numpy as np
from PIL import Image

from photo_declutter.core.errors import ExtractionError
from photo_declutter.core.models import Asset, FeatureVector
from photo_declutter.core.store import AssetStore
from photo_declutter.utils.logger import setup_logger

logger = setup_logger(__name__)

# Laplacian variance at which an image counts as fully sharp
BLUR_THRESHOLD = 100.0
DEFAULT_TARGET_SIZE = 512
DEFAULT_HASH_SIZE = 8


class FeatureExtractor:
    """Turns one asset into a FeatureVector and a blur score in [0, 1]."""

    def __init__(
        self,
        target_size: int = DEFAULT_TARGET_SIZE,
        blur_threshold: float = BLUR_THRESHOLD,
        hash_size: int = DEFAULT_HASH_SIZE,
    ):
        """
        Initialize the extractor.

        Args:
            target_size: Side of the square the image is decoded at
            blur_threshold: Laplacian variance mapped to a blur score of 0
            hash_size: Perceptual hash side; descriptors have hash_size**2 bits
        """
        if target_size <= 0:
            raise ValueError("target_size must be positive")
        if blur_threshold <= 0:
            raise ValueError("blur_threshold must be positive")
        self.target_size = target_size
        self.blur_threshold = blur_threshold
        self.hash_size = hash_size

    def extract(self, asset: Asset, store: AssetStore) -> Tuple[FeatureVector, float]:
        """
        Decode an asset once and compute its descriptor and blur score.

        Args:
            asset: Asset to analyse
            store: Store to fetch the reduced-size image from

        Returns:
            (feature vector, blur score)

        Raises:
            ExtractionError: If the image cannot be fetched, decoded or analysed
        """
        try:
            image = store.fetch_image(asset.id, self.target_size)
            return self.compute_descriptor(image), self.compute_blur_score(image)
        except Exception as e:
            raise ExtractionError(asset.id, str(e) or type(e).__name__) from e

    def compute_descriptor(self, image: Image.Image) -> FeatureVector:
        """DCT perceptual hash of *image*, flattened to a bit vector."""
        phash = imagehash.phash(image, hash_size=self.hash_size)
        return FeatureVector(tuple(int(bit) for bit in phash.hash.flatten()))

    def compute_blur_score(self, image: Image.Image) -> float:
        """
        Blur score from the dispersion of the Laplacian response.

        Sharp edges give a wide spread of second derivatives, so a low
        variance means a blurry image. The score is
        ``clamp(1 - variance / blur_threshold, 0, 1)``; higher is blurrier.
        """
        pixels = np.asarray(image.convert("RGB"))
        if pixels.size == 0:
            raise ValueError("empty image")

        gray = cv2.cvtColor(pixels, cv2.COLOR_RGB2GRAY)
        variance = float(cv2.Laplacian(gray, cv2.CV_64F).var())
        return max(0.0, min(1.0, 1.0 - variance / self.blur_threshold))


class FeatureCache:
    """
    Scan-scoped results of the extraction fan-out.

    Workers never touch the dictionaries directly; ``record_success`` and
    ``record_failure`` are the only writers and share one lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._vectors: Dict[str, FeatureVector] = {}
        self._blur_scores: Dict[str, float] = {}
        self._failures: Dict[str, str] = {}

    def record_success(self, asset_id: str, vector: FeatureVector, blur_score: float) -> None:
        with self._lock:
            self._vectors[asset_id] = vector
            self._blur_scores[asset_id] = blur_score
            self._failures.pop(asset_id, None)

    def record_failure(self, asset_id: str, reason: str) -> None:
        with self._lock:
            self._vectors.pop(asset_id, None)
            self._blur_scores.pop(asset_id, None)
            self._failures[asset_id] = reason

    def vectors(self) -> Dict[str, FeatureVector]:
        with self._lock:
            return dict(self._vectors)

    def blur_scores(self) -> Dict[str, float]:
        with self._lock:
            return dict(self._blur_scores)

    def failures(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._failures)

    def __len__(self) -> int:
        with self._lock:
            return len(self._vectors) + len(self._failures)
