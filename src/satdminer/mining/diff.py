"""File-level delta between two commits and diff-based SATD inference."""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence

from satdminer.detector import BaseSATDDetector
from satdminer.extraction.commit_ref import CommitRef
from satdminer.mining.line_map import LineRangeMap
from satdminer.mining.resolution import added_instance, removed_instance, replaced_instance
from satdminer.models import Comment, FileDiffEntry, SATDInstance

# Given a new-revision path, the still-unmatched SATD comments in that file
ReplacementLookup = Callable[[str], Sequence[Comment]]


class BaseCommitDiff(ABC):
    """Decides from git hunks whether an unmatched comment was added or removed."""

    @abstractmethod
    def instances_for_old_file(
        self,
        file_path: str,
        comment: Comment,
        replacements: Optional[ReplacementLookup] = None,
    ) -> List[SATDInstance]:
        """Instances implied by the diff for a comment of the old revision.

        Args:
            file_path: Path of the comment's file in the old revision
            comment: The unmatched old comment
            replacements: Lookup of candidate new comments that may have
                replaced it in the same hunk

        Returns:
            The inferred instances; empty if the diff does not touch the comment
        """
        pass

    @abstractmethod
    def instances_for_new_file(self, file_path: str, comment: Comment) -> List[SATDInstance]:
        """Instances implied by the diff for a comment of the new revision.

        Args:
            file_path: Path of the comment's file in the new revision
            comment: The unmatched new comment

        Returns:
            The inferred instances; empty if the diff does not touch the comment
        """
        pass


class CommitToCommitDiff(BaseCommitDiff):
    """Diff entries between the trees of two commits, limited to source files."""

    def __init__(
        self,
        old: CommitRef,
        new: CommitRef,
        detector: BaseSATDDetector,
        entries: Optional[List[FileDiffEntry]] = None,
    ) -> None:
        """Load the diff between two revisions.

        Args:
            old: Older revision
            new: Newer revision
            detector: Detector used to resolve replaced comments
            entries: Precomputed diff entries (read from git when omitted)

        Raises:
            GitAccessError: If the diff cannot be computed
        """
        self.old = old
        self.new = new
        self.detector = detector
        self.entries = entries if entries is not None else new.extractor.changed_files(old.commit, new.commit)
        self._is_test_path = new.extractor.is_test_path

    def modified_files_old(self) -> List[str]:
        return [
            entry.old_path
            for entry in self.entries
            if entry.old_path and not self._is_test_path(entry.old_path)
        ]

    def modified_files_new(self) -> List[str]:
        return [
            entry.new_path
            for entry in self.entries
            if entry.new_path and not self._is_test_path(entry.new_path)
        ]

    def instances_for_old_file(
        self,
        file_path: str,
        comment: Comment,
        replacements: Optional[ReplacementLookup] = None,
    ) -> List[SATDInstance]:
        instances = []
        for entry in self.entries:
            if entry.old_path != file_path:
                continue

            if entry.is_deleted:
                instances.append(removed_instance(file_path, comment))
                continue

            line_map = LineRangeMap(entry.hunks)
            # untouched comments only shift
            if line_map.map_old_range(comment.start_line, comment.end_line) is not None:
                continue
            hunk = line_map.old_hunk_at(comment.start_line, comment.end_line)

            replacement = None
            if replacements is not None and entry.new_path:
                replacement = next(
                    (
                        candidate
                        for candidate in replacements(entry.new_path)
                        if candidate.same_scope(comment)
                        and hunk.inserts(candidate.start_line, candidate.end_line)
                    ),
                    None,
                )

            if replacement is None:
                instances.append(removed_instance(file_path, comment))
            else:
                instances.append(
                    replaced_instance(file_path, comment, entry.new_path, replacement, self.detector)
                )
        return instances

    def instances_for_new_file(self, file_path: str, comment: Comment) -> List[SATDInstance]:
        instances = []
        for entry in self.entries:
            if entry.new_path != file_path:
                continue

            if entry.is_added:
                instances.append(added_instance(file_path, comment))
                continue

            if LineRangeMap(entry.hunks).map_new_range(comment.start_line, comment.end_line) is None:
                instances.append(added_instance(file_path, comment))
        return instances
