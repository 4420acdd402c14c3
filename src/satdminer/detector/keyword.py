"""Keyword-based SATD detector.

Follows the MAT approach ("How Far Have We Progressed in Identifying
Self-admitted Technical Debts?"): a comment is SATD when one of its tokens
starts or ends with a task tag.
"""

import re
from typing import Dict, Sequence, Tuple

from satdminer.detector.base import BaseSATDDetector
from satdminer.models import SATDType

DEFAULT_KEYWORDS: Tuple[str, ...] = ("todo", "fixme", "hack")

# Checked in order; the first family with a hit wins
CATEGORY_HINTS: Dict[SATDType, Tuple[str, ...]] = {
    SATDType.DEFECT: ("fixme", "bug", "broken", "crash", "leak", "race", "wrong"),
    SATDType.TEST: ("test", "junit", "assert", "mock"),
    SATDType.DOCUMENTATION: ("document", "javadoc", "docs", "comment"),
    SATDType.DESIGN: ("hack", "refactor", "workaround", "ugly", "kludge", "cleanup", "duplicat"),
}

_TOKEN_SPLIT = re.compile(r"\s+")
_STRIP_CHARS = ".,;:!?()[]{}<>\"'`*-/@"


class KeywordSATDDetector(BaseSATDDetector):
    """Detects SATD from task tags such as TODO, FIXME, HACK and XXX."""

    def __init__(self, keywords: Sequence[str] = DEFAULT_KEYWORDS) -> None:
        self.keywords = tuple(k.lower() for k in keywords)

    def _tokens(self, comment: str):
        for raw in _TOKEN_SPLIT.split(comment.lower().replace("'", "")):
            token = raw.strip(_STRIP_CHARS)
            if token:
                yield token

    def is_satd(self, comment: str) -> bool:
        for token in self._tokens(comment):
            if token == "xxx":
                return True
            for keyword in self.keywords:
                if token.startswith(keyword) or token.endswith(keyword):
                    return True
        return False

    def classify(self, comment: str) -> SATDType:
        if not self.is_satd(comment):
            return SATDType.WITHOUT_CLASSIFICATION

        lowered = comment.lower()
        for category, hints in CATEGORY_HINTS.items():
            if any(hint in lowered for hint in hints):
                return category
        return SATDType.IMPLEMENTATION
