"""Base class for SATD detectors."""

from abc import ABC, abstractmethod

import structlog

from satdminer.models import SATDType

logger = structlog.get_logger(__name__)


class BaseSATDDetector(ABC):
    """Abstract base class for SATD detectors.

    Implementations must be deterministic: the same text always gets the same
    answer within a run, since alignment relies on repeatable classification.
    """

    @abstractmethod
    def is_satd(self, comment: str) -> bool:
        """Decide whether a comment admits technical debt.

        Args:
            comment: Normalized comment text

        Returns:
            True if the comment is SATD
        """
        pass

    def classify(self, comment: str) -> SATDType:
        """Categorize a comment.

        Args:
            comment: Normalized comment text

        Returns:
            The debt category, or WITHOUT_CLASSIFICATION if not SATD
        """
        if self.is_satd(comment):
            return SATDType.IMPLEMENTATION
        return SATDType.WITHOUT_CLASSIFICATION

    def safe_is_satd(self, comment: str) -> bool:
        """``is_satd`` that reports detector failures as "not SATD"."""
        try:
            return self.is_satd(comment)
        except Exception as e:
            logger.warning(
                "satd_detector_failed",
                detector=type(self).__name__,
                error=str(e),
                comment_preview=comment[:80],
            )
            return False

    def safe_classify(self, comment: str) -> SATDType:
        try:
            return self.classify(comment)
        except Exception as e:
            logger.warning(
                "satd_classification_failed",
                detector=type(self).__name__,
                error=str(e),
                comment_preview=comment[:80],
            )
            return SATDType.WITHOUT_CLASSIFICATION
