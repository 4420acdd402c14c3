"""Navigation node for one repository revision."""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from git import Commit

from satdminer.models import CommitInfo

if TYPE_CHECKING:
    from satdminer.extraction.git_extractor import GitExtractor


class CommitRef:
    """A repository revision plus lazily-resolved parents.

    Equality and hashing use the commit hash only, so references can key
    dicts and sets during traversal without touching the object store.
    """

    def __init__(self, extractor: "GitExtractor", commit: Commit) -> None:
        self._extractor = extractor
        self._commit = commit
        self._parents: Optional[List["CommitRef"]] = None

    @property
    def commit(self) -> Commit:
        return self._commit

    @property
    def extractor(self) -> "GitExtractor":
        return self._extractor

    @property
    def commit_hash(self) -> str:
        return self._commit.hexsha

    @property
    def short_hash(self) -> str:
        return self._commit.hexsha[:7]

    @property
    def project_name(self) -> str:
        return self._extractor.project_name

    @property
    def project_uri(self) -> str:
        return self._extractor.project_uri

    @property
    def authored_at(self) -> datetime:
        return datetime.fromtimestamp(self._commit.authored_date)

    @property
    def committed_at(self) -> datetime:
        return datetime.fromtimestamp(self._commit.committed_date)

    def parents(self) -> List["CommitRef"]:
        """Direct parents of this revision.

        Raises:
            GitAccessError: If the commit object cannot be read. Nothing is
                cached on failure, so the call can be retried.
        """
        if self._parents is None:
            self._parents = [
                CommitRef(self._extractor, parent)
                for parent in self._extractor.parents_of(self._commit)
            ]
        return list(self._parents)

    def info(self) -> CommitInfo:
        return self._extractor.commit_info(self._commit)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CommitRef):
            return self.commit_hash == other.commit_hash
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.commit_hash)

    def __repr__(self) -> str:
        return f"CommitRef({self.short_hash})"


def is_direct_parent(child: CommitRef, candidate: CommitRef) -> bool:
    """True iff ``candidate`` is one of ``child``'s direct parents."""
    return candidate in child.parents()


def are_adjacent(old: CommitRef, new: CommitRef) -> bool:
    """True iff one revision is a direct parent of the other."""
    return is_direct_parent(new, old) or is_direct_parent(old, new)
