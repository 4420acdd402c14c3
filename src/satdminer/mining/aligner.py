"""Alignment of SATD comments between an old and a new revision.

Each pass only looks at mappings that are still unmatched, binds what it can,
and leaves the rest for the next pass. Pass order is significant: content
matching always runs before location matching.
"""

from collections import defaultdict, deque
from typing import Deque, Dict, Iterable, List, Sequence, Set, Tuple

import structlog

from satdminer.exceptions import InvariantViolation
from satdminer.extraction.comment_extractor import ExtractionResult
from satdminer.models import CommentMapping, MappingState, SATDInstance

logger = structlog.get_logger(__name__)

Pair = Tuple[int, int]


def build_mappings(result: ExtractionResult) -> List[CommentMapping]:
    """Flatten an extraction result into mappings with duplication ids."""
    mappings = [
        CommentMapping(comment=comment, file_path=file_path)
        for file_path, comments in result.comments.items()
        for comment in comments
    ]
    populate_duplication_ids(mappings)
    return mappings


def populate_duplication_ids(mappings: Sequence[CommentMapping]) -> None:
    """Number identical comments of one file 0, 1, 2, ... in encounter order."""
    # sorted() is stable, so encounter order survives within each group
    order = sorted(range(len(mappings)), key=lambda i: (mappings[i].file_path, mappings[i].comment.text))
    previous_key = None
    counter = 0
    for index in order:
        mapping = mappings[index]
        key = (mapping.file_path, mapping.comment.text)
        counter = counter + 1 if key == previous_key else 0
        mapping.duplication_id = counter
        previous_key = key


class CommentAligner:
    """Owns the old and new mapping lists of one comparison."""

    def __init__(self, old: List[CommentMapping], new: List[CommentMapping]) -> None:
        self.old = old
        self.new = new

    def exclude_files(self, errored_files: Iterable[str]) -> int:
        """Take every mapping of a failed file out of alignment on both sides.

        Returns:
            Number of mappings excluded
        """
        errored = set(errored_files)
        excluded = 0
        for mapping in (*self.old, *self.new):
            if mapping.file_path in errored and not mapping.is_mapped:
                mapping.exclude()
                excluded += 1
        return excluded

    def align_by_content(self) -> List[Pair]:
        """Bind each unmatched old mapping to the first unmatched new one with identical text."""
        candidates: Dict[str, Deque[int]] = defaultdict(deque)
        for index in self.unmatched_new():
            candidates[self.new[index].comment.text].append(index)

        pairs = []
        for old_index in self.unmatched_old():
            queue = candidates.get(self.old[old_index].comment.text)
            if queue:
                new_index = queue.popleft()
                self._bind(old_index, new_index, MappingState.CONTENT_MATCHED)
                pairs.append((old_index, new_index))
        return pairs

    def align_by_location(self) -> List[Pair]:
        """Bind unmatched old mappings to unmatched new ones in the same file, class and method."""
        candidates: Dict[Tuple[str, str, str], List[int]] = defaultdict(list)
        for index in self.unmatched_new():
            mapping = self.new[index]
            key = (mapping.file_path, mapping.comment.containing_class, mapping.comment.containing_method)
            candidates[key].append(index)

        pairs = []
        for old_index in self.unmatched_old():
            mapping = self.old[old_index]
            key = (mapping.file_path, mapping.comment.containing_class, mapping.comment.containing_method)
            for new_index in candidates.get(key, ()):
                if not self.new[new_index].is_mapped:
                    self._bind(old_index, new_index, MappingState.LOCATION_MATCHED)
                    pairs.append((old_index, new_index))
                    break
        return pairs

    def reconcile_inferred(self, inferred: Sequence[Tuple[int, SATDInstance]]) -> int:
        """Consume the new mappings already carried by old-side inferred instances.

        Args:
            inferred: (old index, instance) for each instance inferred from the old side

        Returns:
            Number of new mappings consumed

        Raises:
            InvariantViolation: If an instance names a new comment with no free mapping
        """
        free: Dict[Tuple[str, object], Deque[int]] = defaultdict(deque)
        for index in self.unmatched_new():
            mapping = self.new[index]
            free[(mapping.file_path, mapping.comment)].append(index)

        consumed = 0
        for old_index, instance in inferred:
            if instance.new is None:
                continue
            queue = free.get((instance.new.file_path, instance.new.comment))
            if not queue:
                raise InvariantViolation(
                    f"Inferred instance points at {instance.new.file_path}:"
                    f"{instance.new.comment.start_line} which is not an unmatched new comment"
                )
            self.new[queue.popleft()].map_to(old_index, MappingState.DIFF_INFERRED)
            consumed += 1
        return consumed

    def unmatched_old(self) -> List[int]:
        return [i for i, mapping in enumerate(self.old) if not mapping.is_mapped]

    def unmatched_new(self) -> List[int]:
        return [i for i, mapping in enumerate(self.new) if not mapping.is_mapped]

    def check_conservation(self, unresolved_old: Set[int], unresolved_new: Set[int]) -> None:
        """Every mapping must be resolved, excluded, or reported as unresolved.

        Raises:
            InvariantViolation: If any mapping is unaccounted for
        """
        for side, mappings, unresolved in (("old", self.old, unresolved_old), ("new", self.new, unresolved_new)):
            for index, mapping in enumerate(mappings):
                if mapping.state in (MappingState.RESOLVED, MappingState.EXCLUDED):
                    continue
                if mapping.state == MappingState.UNMATCHED and index in unresolved:
                    continue
                raise InvariantViolation(
                    f"{side} mapping {mapping.file_path}:{mapping.comment.start_line} "
                    f"left in state {mapping.state.value}"
                )

    def _bind(self, old_index: int, new_index: int, how: MappingState) -> None:
        self.old[old_index].map_to(new_index, how)
        self.new[new_index].map_to(old_index, how)
