"""Cross-revision SATD alignment and resolution."""

from satdminer.mining.aligner import CommentAligner, build_mappings, populate_duplication_ids
from satdminer.mining.diff import BaseCommitDiff, CommitToCommitDiff
from satdminer.mining.history import HistoryMiner
from satdminer.mining.line_map import LineRangeMap
from satdminer.mining.miner import MiningOutcome, RepositoryDiffMiner, mine_comment_changes, mine_snapshot
from satdminer.mining.resolution import resolve_pair

__all__ = [
    "CommentAligner",
    "build_mappings",
    "populate_duplication_ids",
    "BaseCommitDiff",
    "CommitToCommitDiff",
    "HistoryMiner",
    "LineRangeMap",
    "MiningOutcome",
    "RepositoryDiffMiner",
    "mine_comment_changes",
    "mine_snapshot",
    "resolve_pair",
]
