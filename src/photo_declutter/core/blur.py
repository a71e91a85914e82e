"""Blur severity classification and filtering."""

from typing import Iterable, List, Mapping

from photo_declutter.core.models import Asset, BlurRecord, BlurSeverity
from photo_declutter.utils.logger import setup_logger

logger = setup_logger(__name__)

INCLUSION_CUTOFF = 0.3
BLURRY_CUTOFF = 0.5
VERY_BLURRY_CUTOFF = 0.7


class BlurClassifier:
    """Buckets blur scores and keeps only the blurry photos."""

    def __init__(
        self,
        inclusion_cutoff: float = INCLUSION_CUTOFF,
        blurry_cutoff: float = BLURRY_CUTOFF,
        very_blurry_cutoff: float = VERY_BLURRY_CUTOFF,
    ):
        """
        Initialize the classifier.

        Args:
            inclusion_cutoff: Scores at or below this are not reported at all
            blurry_cutoff: Scores above this are at least BLURRY
            very_blurry_cutoff: Scores above this are VERY_BLURRY
        """
        if not 0.0 <= inclusion_cutoff < blurry_cutoff < very_blurry_cutoff <= 1.0:
            raise ValueError(
                "Blur cutoffs must satisfy 0 <= inclusion < blurry < very_blurry <= 1"
            )
        self.inclusion_cutoff = inclusion_cutoff
        self.blurry_cutoff = blurry_cutoff
        self.very_blurry_cutoff = very_blurry_cutoff

    def classify(self, blur_score: float) -> BlurSeverity:
        if blur_score > self.very_blurry_cutoff:
            return BlurSeverity.VERY_BLURRY
        if blur_score > self.blurry_cutoff:
            return BlurSeverity.BLURRY
        return BlurSeverity.SLIGHTLY_BLURRY

    def is_blurry(self, blur_score: float) -> bool:
        return blur_score > self.inclusion_cutoff

    def build_records(
        self, assets: Iterable[Asset], blur_scores: Mapping[str, float]
    ) -> List[BlurRecord]:
        """
        Turn raw scores into the blurry-photo list.

        Args:
            assets: Analysed assets
            blur_scores: Score per asset id; assets without a score are skipped

        Returns:
            Records above the inclusion cutoff, blurriest first
        """
        records = []
        for asset in assets:
            score = blur_scores.get(asset.id)
            if score is None or not self.is_blurry(score):
                continue
            records.append(
                BlurRecord(
                    asset_id=asset.id,
                    blur_score=score,
                    severity=self.classify(score),
                    estimated_size=asset.estimated_size,
                )
            )

        records.sort(key=lambda record: (-record.blur_score, record.asset_id))
        logger.info(f"Found {len(records)} blurry photos")
        return records
