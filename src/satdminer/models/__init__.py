"""Data models for SATD lifecycle mining."""

from satdminer.models.comment import (
    NO_METHOD,
    Comment,
    CommentMapping,
    MappingState,
    Resolution,
    SATDDifference,
    SATDInFile,
    SATDInstance,
    SATDSnapshot,
    SATDSnapshotEntry,
    SATDType,
)
from satdminer.models.commit import CommitInfo, FileDiffEntry, HunkRange
from satdminer.models.config import RepositoryConfig, Settings

__all__ = [
    "NO_METHOD",
    "Comment",
    "CommentMapping",
    "MappingState",
    "Resolution",
    "SATDDifference",
    "SATDInFile",
    "SATDInstance",
    "SATDSnapshot",
    "SATDSnapshotEntry",
    "SATDType",
    "CommitInfo",
    "FileDiffEntry",
    "HunkRange",
    "RepositoryConfig",
    "Settings",
]
