"""Line-range mapping between two revisions of one file."""

from typing import List, Optional, Sequence, Tuple

from satdminer.models import HunkRange


class LineRangeMap:
    """Maps line ranges across a zero-context diff of a single file.

    A range maps to None when the diff removes (old side) or inserts (new
    side) any line inside it; otherwise it maps to the shifted range.
    """

    def __init__(self, hunks: Sequence[HunkRange]) -> None:
        self.hunks: List[HunkRange] = sorted(hunks, key=lambda h: (h.source_start, h.target_start))

    def old_hunk_at(self, start: int, end: int) -> Optional[HunkRange]:
        """First hunk removing an old line in ``[start, end]`` or inserting inside it."""
        for hunk in self.hunks:
            if hunk.removes(start, end):
                return hunk
            if hunk.source_length == 0 and start <= hunk.source_start < end:
                return hunk
        return None

    def new_hunk_at(self, start: int, end: int) -> Optional[HunkRange]:
        """First hunk inserting a new line in ``[start, end]`` or removing inside it."""
        for hunk in self.hunks:
            if hunk.inserts(start, end):
                return hunk
            if hunk.target_length == 0 and start <= hunk.target_start < end:
                return hunk
        return None

    def map_old_range(self, start: int, end: int) -> Optional[Tuple[int, int]]:
        if self.old_hunk_at(start, end) is not None:
            return None
        shift = 0
        for hunk in self.hunks:
            # a pure insertion at source_start N lands after old line N
            if hunk.source_start + max(hunk.source_length, 1) - 1 < start:
                shift += hunk.target_length - hunk.source_length
        return start + shift, end + shift

    def map_new_range(self, start: int, end: int) -> Optional[Tuple[int, int]]:
        if self.new_hunk_at(start, end) is not None:
            return None
        shift = 0
        for hunk in self.hunks:
            if hunk.target_start + max(hunk.target_length, 1) - 1 < start:
                shift += hunk.source_length - hunk.target_length
        return start + shift, end + shift
