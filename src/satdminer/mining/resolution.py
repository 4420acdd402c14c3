"""Lifecycle outcomes for aligned and unaligned SATD comments."""

from typing import List, Sequence, Tuple

from satdminer.detector import BaseSATDDetector
from satdminer.models import Comment, CommentMapping, Resolution, SATDInFile, SATDInstance


def resolve_pair(old: Comment, new: Comment, detector: BaseSATDDetector) -> Resolution:
    """Outcome for an old comment matched to a new one.

    The new text is re-checked with the detector: a comment that survives but
    no longer admits debt means the debt was resolved.
    """
    if not detector.safe_is_satd(new.text):
        return Resolution.REMOVED
    if old.text == new.text:
        return Resolution.STAY
    return Resolution.CHANGED


def removed_instance(file_path: str, comment: Comment) -> SATDInstance:
    return SATDInstance(
        old=SATDInFile(file_path=file_path, comment=comment),
        new=None,
        resolution=Resolution.REMOVED,
    )


def added_instance(file_path: str, comment: Comment) -> SATDInstance:
    return SATDInstance(
        old=None,
        new=SATDInFile(file_path=file_path, comment=comment),
        resolution=Resolution.ADDED,
    )


def replaced_instance(
    old_path: str, old: Comment, new_path: str, new: Comment, detector: BaseSATDDetector
) -> SATDInstance:
    return SATDInstance(
        old=SATDInFile(file_path=old_path, comment=old),
        new=SATDInFile(file_path=new_path, comment=new),
        resolution=resolve_pair(old, new, detector),
    )


def resolve_matched_pairs(
    old_mappings: Sequence[CommentMapping],
    new_mappings: Sequence[CommentMapping],
    pairs: Sequence[Tuple[int, int]],
    detector: BaseSATDDetector,
) -> List[SATDInstance]:
    """Instances for content- or location-matched pairs, in old-side order.

    Each instance carries the new comment's duplication id, matching the side
    its ``instance_id`` is computed from.

    Args:
        old_mappings: Old revision mappings
        new_mappings: New revision mappings
        pairs: (old index, new index) bindings from the alignment passes
        detector: Detector used to re-check the new comment

    Returns:
        One SATDInstance per pair
    """
    instances = []
    for old_index, new_index in sorted(pairs):
        old = old_mappings[old_index]
        new = new_mappings[new_index]
        instances.append(
            SATDInstance(
                old=old.to_instance_side(),
                new=new.to_instance_side(),
                resolution=resolve_pair(old.comment, new.comment, detector),
                duplication_id=new.duplication_id,
            )
        )
    return instances
