"""Unit tests for SATD detectors."""

import pytest

from satdminer.detector import BaseSATDDetector, KeywordSATDDetector, create_detector
from satdminer.models import SATDType


class FailingDetector(BaseSATDDetector):
    """Detector that always raises."""

    def is_satd(self, comment: str) -> bool:
        raise RuntimeError("model unavailable")


class TestKeywordSATDDetector:
    """Tests for keyword-based detection."""

    @pytest.fixture
    def detector(self):
        return KeywordSATDDetector()

    @pytest.mark.parametrize(
        "text",
        [
            "TODO fix race",
            "todo: handle null",
            "FIXME this leaks",
            "(hack) bypass the cache",
            "XXX not thread safe",
            "see mytodo list",
            "TODOs remain here",
        ],
    )
    def test_detects_task_tags(self, detector, text):
        """Test detection of task tags."""
        assert detector.is_satd(text)

    @pytest.mark.parametrize(
        "text",
        [
            "Returns the number of items",
            "Nothing to do here",
            "",
        ],
    )
    def test_ignores_plain_comments(self, detector, text):
        """Test that plain comments are not SATD."""
        assert not detector.is_satd(text)

    def test_custom_keywords(self):
        """Test a detector with custom keywords."""
        detector = KeywordSATDDetector(keywords=("temporary",))
        assert detector.is_satd("Temporary workaround")
        assert not detector.is_satd("TODO later")

    def test_classify_categories(self, detector):
        """Test classification into debt categories."""
        assert detector.classify("FIXME memory leak") == SATDType.DEFECT
        assert detector.classify("TODO add junit coverage") == SATDType.TEST
        assert detector.classify("TODO: write javadoc") == SATDType.DOCUMENTATION
        assert detector.classify("HACK around the parser") == SATDType.DESIGN
        assert detector.classify("TODO: optimize") == SATDType.IMPLEMENTATION

    def test_classify_non_satd(self, detector):
        """Test classification of a plain comment."""
        assert detector.classify("Returns the count") == SATDType.WITHOUT_CLASSIFICATION


class TestSafeWrappers:
    """Tests for detector failure handling."""

    def test_failure_is_not_satd(self):
        """Test that a failing classifier reports no SATD."""
        detector = FailingDetector()
        assert detector.safe_is_satd("TODO anything") is False

    def test_failure_is_unclassified(self):
        """Test that a failing classifier falls back to WITHOUT_CLASSIFICATION."""
        detector = FailingDetector()
        assert detector.safe_classify("TODO anything") == SATDType.WITHOUT_CLASSIFICATION


class TestCreateDetector:
    """Tests for the detector registry."""

    def test_keyword_detector(self):
        """Test creating the keyword detector by name."""
        assert isinstance(create_detector("keyword"), KeywordSATDDetector)

    def test_unknown_detector(self):
        """Test that an unknown detector name raises."""
        with pytest.raises(ValueError, match="Unknown detector"):
            create_detector("debthunter")
