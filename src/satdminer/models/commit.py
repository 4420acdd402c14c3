"""Data models for Git revisions and file-level diffs."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class CommitInfo(BaseModel):
    """Serializable identity of one repository revision."""

    hash: str = Field(..., description="Full commit SHA hash")
    short_hash: str = Field(..., description="Short commit SHA hash (7 chars)")
    authored_at: datetime = Field(..., description="Author timestamp")
    committed_at: datetime = Field(..., description="Commit timestamp")
    parent_hashes: List[str] = Field(default_factory=list, description="Parent commit hashes")

    class Config:
        """Pydantic config."""
        json_schema_extra = {
            "example": {
                "hash": "abc123def456",
                "short_hash": "abc123d",
                "authored_at": "2024-01-15T10:30:00Z",
                "committed_at": "2024-01-15T10:30:00Z",
                "parent_hashes": ["parent123"],
            }
        }


class HunkRange(BaseModel):
    """One zero-context hunk of a unified diff."""

    source_start: int = Field(..., description="First old line of the hunk")
    source_length: int = Field(0, description="Number of old lines removed")
    target_start: int = Field(..., description="First new line of the hunk")
    target_length: int = Field(0, description="Number of new lines inserted")

    @property
    def source_end(self) -> int:
        return self.source_start + self.source_length - 1

    @property
    def target_end(self) -> int:
        return self.target_start + self.target_length - 1

    def removes(self, start: int, end: int) -> bool:
        """Whether any old line in ``[start, end]`` is removed by this hunk."""
        if self.source_length == 0:
            return False
        return start <= self.source_end and end >= self.source_start

    def inserts(self, start: int, end: int) -> bool:
        """Whether any new line in ``[start, end]`` is inserted by this hunk."""
        if self.target_length == 0:
            return False
        return start <= self.target_end and end >= self.target_start


class FileDiffEntry(BaseModel):
    """A single changed file between two commit trees."""

    old_path: Optional[str] = Field(None, description="Path in the old tree (None if added)")
    new_path: Optional[str] = Field(None, description="Path in the new tree (None if deleted)")
    change_type: str = Field(..., description="Type of change: added, deleted, renamed, modified")
    hunks: List[HunkRange] = Field(default_factory=list, description="Zero-context hunks")

    @property
    def is_added(self) -> bool:
        return self.change_type == "added"

    @property
    def is_deleted(self) -> bool:
        return self.change_type == "deleted"

    class Config:
        """Pydantic config."""
        json_schema_extra = {
            "example": {
                "old_path": "src/main/java/Foo.java",
                "new_path": "src/main/java/Foo.java",
                "change_type": "modified",
                "hunks": [
                    {"source_start": 10, "source_length": 1, "target_start": 10, "target_length": 2}
                ],
            }
        }
