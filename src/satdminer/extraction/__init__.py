"""Git access and comment extraction."""

from satdminer.extraction.comment_extractor import CommentExtractor, ExtractionResult
from satdminer.extraction.commit_ref import CommitRef, are_adjacent, is_direct_parent
from satdminer.extraction.git_extractor import GitExtractor

__all__ = [
    "CommentExtractor",
    "ExtractionResult",
    "CommitRef",
    "GitExtractor",
    "are_adjacent",
    "is_direct_parent",
]
