"""SATD detectors."""

from satdminer.detector.base import BaseSATDDetector
from satdminer.detector.keyword import KeywordSATDDetector

DETECTORS = {
    "keyword": KeywordSATDDetector,
}


def create_detector(name: str) -> BaseSATDDetector:
    """Instantiate a detector by its registered name.

    Raises:
        ValueError: If no detector is registered under ``name``
    """
    try:
        return DETECTORS[name]()
    except KeyError as e:
        raise ValueError(f"Unknown detector: {name}. Available: {', '.join(DETECTORS)}") from e


__all__ = [
    "BaseSATDDetector",
    "KeywordSATDDetector",
    "DETECTORS",
    "create_detector",
]
