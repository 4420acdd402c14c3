"""Mines the differences in SATD between two revisions of a repository."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

import structlog

from satdminer.detector import BaseSATDDetector
from satdminer.extraction.comment_extractor import CommentExtractor, ExtractionResult
from satdminer.extraction.commit_ref import CommitRef, are_adjacent
from satdminer.mining.aligner import CommentAligner, build_mappings
from satdminer.mining.diff import BaseCommitDiff, CommitToCommitDiff
from satdminer.mining.resolution import resolve_matched_pairs
from satdminer.models import (
    Comment,
    MappingState,
    SATDDifference,
    SATDInFile,
    SATDInstance,
    SATDSnapshot,
    SATDSnapshotEntry,
)

logger = structlog.get_logger(__name__)


@dataclass
class MiningOutcome:
    """Result of aligning and resolving one pair of extraction results."""

    instances: List[SATDInstance] = field(default_factory=list)
    errored_files: List[str] = field(default_factory=list)
    unresolved: List[SATDInFile] = field(default_factory=list)
    unchanged_count: int = 0


def mine_comment_changes(
    old_result: ExtractionResult,
    new_result: ExtractionResult,
    diff: BaseCommitDiff,
    detector: BaseSATDDetector,
    direct_parent: bool,
) -> MiningOutcome:
    """Align old and new SATD comments and assign a lifecycle outcome to each.

    Runs, in order: failed-file exclusion, content alignment, location
    alignment (release mode only), diff inference for the old side,
    reconciliation of new comments already claimed by that inference, diff
    inference for the new side, and resolution of matched pairs.

    Args:
        old_result: SATD comments of the old revision
        new_result: SATD comments of the new revision
        diff: Diff capability for the pair
        detector: Detector used to re-check new comments
        direct_parent: Whether the revisions are adjacent commits

    Returns:
        MiningOutcome with instances ordered matched, removed-side, added-side

    Raises:
        InvariantViolation: If a mapping is consumed twice or left unaccounted
    """
    old_mappings = build_mappings(old_result)
    new_mappings = build_mappings(new_result)
    errored_files = _unique(old_result.errored_files + new_result.errored_files)

    aligner = CommentAligner(old_mappings, new_mappings)
    aligner.exclude_files(errored_files)

    matched_pairs = aligner.align_by_content()
    if not direct_parent:
        matched_pairs += aligner.align_by_location()

    outcome = MiningOutcome(errored_files=errored_files)
    unresolved_old: Set[int] = set()
    unresolved_new: Set[int] = set()

    # Old side: anything still unmatched is checked against the hunks
    claimed: Set[Tuple[str, Comment]] = set()
    # The id follows the side SATDInstance.instance_id hashes
    new_duplication_ids: Dict[Tuple[str, Comment], int] = {
        (m.file_path, m.comment): m.duplication_id for m in new_mappings
    }

    def replacements(new_path: str) -> List[Comment]:
        return [
            new_mappings[i].comment
            for i in aligner.unmatched_new()
            if new_mappings[i].file_path == new_path
            and (new_path, new_mappings[i].comment) not in claimed
        ]

    old_inferred: List[Tuple[int, SATDInstance]] = []
    for index in aligner.unmatched_old():
        mapping = old_mappings[index]
        found = diff.instances_for_old_file(mapping.file_path, mapping.comment, replacements)
        if not found:
            unresolved_old.add(index)
            continue
        instance = found[0]
        if instance.new is None:
            duplication_id = mapping.duplication_id
        else:
            key = (instance.new.file_path, instance.new.comment)
            claimed.add(key)
            duplication_id = new_duplication_ids.get(key, mapping.duplication_id)
        instance = instance.model_copy(update={"duplication_id": duplication_id})
        mapping.map_to(None, MappingState.DIFF_INFERRED)
        old_inferred.append((index, instance))

    aligner.reconcile_inferred(old_inferred)

    new_inferred: List[SATDInstance] = []
    for index in aligner.unmatched_new():
        mapping = new_mappings[index]
        found = diff.instances_for_new_file(mapping.file_path, mapping.comment)
        if not found:
            unresolved_new.add(index)
            continue
        mapping.map_to(None, MappingState.DIFF_INFERRED)
        new_inferred.append(found[0].model_copy(update={"duplication_id": mapping.duplication_id}))

    if direct_parent:
        outcome.unchanged_count = len(matched_pairs)
    else:
        outcome.instances.extend(resolve_matched_pairs(old_mappings, new_mappings, matched_pairs, detector))
    outcome.instances.extend(instance for _, instance in old_inferred)
    outcome.instances.extend(new_inferred)

    for mapping in (*old_mappings, *new_mappings):
        if mapping.state in (
            MappingState.CONTENT_MATCHED,
            MappingState.LOCATION_MATCHED,
            MappingState.DIFF_INFERRED,
        ):
            mapping.resolve()

    outcome.unresolved = [old_mappings[i].to_instance_side() for i in sorted(unresolved_old)]
    outcome.unresolved += [new_mappings[i].to_instance_side() for i in sorted(unresolved_new)]
    for side in outcome.unresolved:
        logger.info(
            "satd_comment_unresolved",
            file_path=side.file_path,
            start_line=side.comment.start_line,
            containing_method=side.comment.containing_method,
        )

    aligner.check_conservation(unresolved_old, unresolved_new)
    return outcome


class RepositoryDiffMiner:
    """Compares the SATD of two revisions of one repository."""

    def __init__(
        self,
        old: CommitRef,
        new: CommitRef,
        detector: BaseSATDDetector,
        comment_extractor: Optional[CommentExtractor] = None,
    ) -> None:
        """Initialize the miner.

        Args:
            old: Older revision
            new: Newer revision
            detector: SATD detector
            comment_extractor: Extractor to use (defaults to one built on ``detector``)
        """
        self.old = old
        self.new = new
        self.detector = detector
        self.comment_extractor = comment_extractor or CommentExtractor(detector)

    def mine_diff(self) -> SATDDifference:
        """Mine the SATD differences between the two revisions.

        Adjacent commits only look at files touched by the diff; other pairs
        (e.g. releases) look at every source file and also align by location.

        Returns:
            SATDDifference for the pair

        Raises:
            GitAccessError: If commits, trees or the diff cannot be read
        """
        direct_parent = are_adjacent(self.old, self.new)
        diff = CommitToCommitDiff(self.old, self.new, self.detector)

        if direct_parent:
            old_files = diff.modified_files_old()
            new_files = diff.modified_files_new()
        else:
            old_files = None
            new_files = None

        new_result = self.comment_extractor.extract(self.new, new_files)
        old_result = self.comment_extractor.extract(self.old, old_files)

        outcome = mine_comment_changes(old_result, new_result, diff, self.detector, direct_parent)

        difference = SATDDifference(
            project_name=self.new.project_name,
            project_uri=self.new.project_uri,
            old_commit=self.old.info(),
            new_commit=self.new.info(),
            direct_parent=direct_parent,
            errored_files=outcome.errored_files,
            unresolved=outcome.unresolved,
            unchanged_count=outcome.unchanged_count,
        )
        difference.add_instances(outcome.instances)

        logger.info(
            "satd_diff_mined",
            old_commit=self.old.short_hash,
            new_commit=self.new.short_hash,
            direct_parent=direct_parent,
            instances=len(difference.instances),
            errored_files=len(difference.errored_files),
            **difference.resolution_counts(),
        )
        return difference


def mine_snapshot(
    ref: CommitRef,
    detector: BaseSATDDetector,
    comment_extractor: Optional[CommentExtractor] = None,
) -> SATDSnapshot:
    """Collect all SATD present in a single revision.

    Args:
        ref: Revision to scan
        detector: SATD detector
        comment_extractor: Extractor to use (defaults to one built on ``detector``)

    Returns:
        SATDSnapshot of the revision
    """
    extractor = comment_extractor or CommentExtractor(detector)
    result = extractor.extract(ref)

    snapshot = SATDSnapshot(
        project_name=ref.project_name,
        project_uri=ref.project_uri,
        commit=ref.info(),
        errored_files=list(result.errored_files),
    )
    for file_path, comments in result.comments.items():
        for comment in comments:
            snapshot.add_entry(
                SATDSnapshotEntry(
                    file_path=file_path,
                    comment=comment,
                    classification=comment.classification,
                )
            )
    return snapshot


def _unique(paths: List[str]) -> List[str]:
    return list(dict.fromkeys(paths))
