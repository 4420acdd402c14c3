"""Data models for SATD comments and their lifecycle across revisions."""

import hashlib
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from satdminer.exceptions import InvariantViolation
from satdminer.models.commit import CommitInfo

# Containing-method value for comments outside any method body
NO_METHOD = "None"


class SATDType(str, Enum):
    """Debt category reported by a detector."""

    TEST = "TEST"
    IMPLEMENTATION = "IMPLEMENTATION"
    DESIGN = "DESIGN"
    DEFECT = "DEFECT"
    DOCUMENTATION = "DOCUMENTATION"
    WITHOUT_CLASSIFICATION = "WITHOUT_CLASSIFICATION"


class Resolution(str, Enum):
    """Lifecycle outcome of one SATD instance between two revisions."""

    ADDED = "SATD_ADDED"
    REMOVED = "SATD_REMOVED"
    STAY = "SATD_STAY"
    CHANGED = "SATD_CHANGED"


class Comment(BaseModel):
    """A single SATD comment as found in one revision of a source file."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(..., description="Normalized comment text")
    start_line: int = Field(..., description="First line of the comment (1-based)")
    end_line: int = Field(..., description="Last line of the comment (1-based)")
    containing_class: str = Field(..., description="Fully-qualified enclosing class")
    containing_method: str = Field(NO_METHOD, description="Enclosing method name or 'None'")
    classification: str = Field(
        SATDType.WITHOUT_CLASSIFICATION.value, description="Detector category label"
    )

    def content_equals(self, other: "Comment") -> bool:
        return self.text == other.text

    def same_scope(self, other: "Comment") -> bool:
        """Same containing class and method, regardless of text."""
        return (
            self.containing_class == other.containing_class
            and self.containing_method == other.containing_method
        )


class MappingState(str, Enum):
    """Alignment progress of a CommentMapping.

    UNMATCHED -> CONTENT_MATCHED | LOCATION_MATCHED | DIFF_INFERRED | EXCLUDED,
    and every matched state -> RESOLVED. RESOLVED and EXCLUDED are terminal.
    """

    UNMATCHED = "unmatched"
    CONTENT_MATCHED = "content_matched"
    LOCATION_MATCHED = "location_matched"
    DIFF_INFERRED = "diff_inferred"
    EXCLUDED = "excluded"
    RESOLVED = "resolved"


_MATCHED_STATES = (
    MappingState.CONTENT_MATCHED,
    MappingState.LOCATION_MATCHED,
    MappingState.DIFF_INFERRED,
)


@dataclass
class CommentMapping:
    """A located comment plus the bookkeeping used to align it across revisions.

    ``mapped_to`` holds the index of the partner mapping in the sibling list
    (the other revision's list). It is written once.
    """

    comment: Comment
    file_path: str
    duplication_id: int = 0
    mapped_to: Optional[int] = None
    state: MappingState = MappingState.UNMATCHED

    @property
    def is_mapped(self) -> bool:
        return self.state != MappingState.UNMATCHED

    def map_to(self, index: Optional[int], how: MappingState) -> None:
        """Bind this mapping once; a second bind is a bookkeeping error."""
        if how not in _MATCHED_STATES and how != MappingState.EXCLUDED:
            raise InvariantViolation(f"Cannot map with state {how.value}")
        if self.is_mapped:
            raise InvariantViolation(
                f"Mapping {self.file_path}:{self.comment.start_line} already {self.state.value}"
            )
        self.mapped_to = index
        self.state = how

    def exclude(self) -> None:
        self.map_to(None, MappingState.EXCLUDED)

    def resolve(self) -> None:
        if self.state not in _MATCHED_STATES:
            raise InvariantViolation(
                f"Mapping {self.file_path}:{self.comment.start_line} cannot be resolved "
                f"from state {self.state.value}"
            )
        self.state = MappingState.RESOLVED

    def to_instance_side(self) -> "SATDInFile":
        return SATDInFile(file_path=self.file_path, comment=self.comment)


class SATDInFile(BaseModel):
    """One side of an SATD instance: a comment at a file path."""

    model_config = ConfigDict(frozen=True)

    file_path: str = Field(..., description="Path of the file in its revision")
    comment: Comment = Field(..., description="The SATD comment")


class SATDInstance(BaseModel):
    """Lifecycle record of one SATD item between two revisions."""

    old: Optional[SATDInFile] = Field(None, description="Old-side location (None if added)")
    new: Optional[SATDInFile] = Field(None, description="New-side location (None if removed)")
    resolution: Resolution = Field(..., description="Lifecycle outcome")
    duplication_id: int = Field(
        0, description="Index among identical comments in one file, on the side instance_id hashes"
    )

    @model_validator(mode="after")
    def _check_sides(self) -> "SATDInstance":
        if self.old is None and self.new is None:
            raise ValueError("SATDInstance needs an old or a new side")
        return self

    @property
    def instance_id(self) -> str:
        """Stable identifier of the debt item this instance describes."""
        side = self.new or self.old
        key = "\x00".join(
            [
                side.file_path,
                side.comment.containing_class,
                side.comment.containing_method,
                side.comment.text,
                str(self.duplication_id),
            ]
        )
        return hashlib.sha256(key.encode("utf-8")).hexdigest()[:16]


class SATDDifference(BaseModel):
    """All SATD instances found when comparing two revisions of a project."""

    project_name: str = Field(..., description="Project name")
    project_uri: str = Field(..., description="Project URI")
    old_commit: CommitInfo = Field(..., description="Older revision")
    new_commit: CommitInfo = Field(..., description="Newer revision")
    direct_parent: bool = Field(False, description="Whether the revisions are adjacent")
    instances: List[SATDInstance] = Field(default_factory=list, description="SATD instances")
    errored_files: List[str] = Field(default_factory=list, description="Files that failed extraction")
    unresolved: List[SATDInFile] = Field(
        default_factory=list, description="Comments with no partner and no diff evidence"
    )
    unchanged_count: int = Field(0, description="Unreported unchanged pairs (direct-parent mode)")

    def add_instances(self, instances: List[SATDInstance]) -> None:
        self.instances.extend(instances)

    def resolution_counts(self) -> Dict[str, int]:
        counts = {resolution.value: 0 for resolution in Resolution}
        for instance in self.instances:
            counts[instance.resolution.value] += 1
        return counts


class SATDSnapshotEntry(BaseModel):
    """One SATD comment present in a single revision."""

    file_path: str
    comment: Comment
    classification: str

    @property
    def snapshot_instance_id(self) -> str:
        key = "\x00".join(
            [
                self.file_path,
                self.comment.text,
                self.comment.containing_class,
                self.comment.containing_method,
                self.classification,
            ]
        )
        return hashlib.sha256(key.encode("utf-8")).hexdigest()[:16]


class SATDSnapshot(BaseModel):
    """The SATD detected within a single repository revision."""

    project_name: str
    project_uri: str
    commit: CommitInfo
    entries: List[SATDSnapshotEntry] = Field(default_factory=list)
    errored_files: List[str] = Field(default_factory=list)

    def add_entry(self, entry: SATDSnapshotEntry) -> None:
        self.entries.append(entry)
