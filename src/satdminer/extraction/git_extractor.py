"""Git repository data access."""

import threading
from datetime import datetime
from io import StringIO
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import git
import structlog
from git import Commit, Repo
from unidiff import PatchSet
from unidiff.errors import UnidiffParseError

from satdminer.exceptions import GitAccessError
from satdminer.extraction.commit_ref import CommitRef
from satdminer.models import CommitInfo, FileDiffEntry, HunkRange, RepositoryConfig

logger = structlog.get_logger(__name__)

_CHANGE_TYPES = {
    "A": "added",
    "D": "deleted",
    "R": "renamed",
    "C": "added",
    "M": "modified",
    "T": "modified",
}


class GitExtractor:
    """Reads commits, trees, blobs and diffs from a Git repository.

    GitPython repositories are not safe for concurrent use, so every read goes
    through a single lock.
    """

    def __init__(self, config: RepositoryConfig) -> None:
        """Initialize the GitExtractor.

        Args:
            config: Repository configuration

        Raises:
            ValueError: If repository path is invalid
        """
        self.config = config
        if not config.repo_path.exists():
            raise ValueError(f"Repository path does not exist: {config.repo_path}")

        try:
            self.repo = Repo(config.repo_path)
        except git.exc.InvalidGitRepositoryError as e:
            raise ValueError(f"Invalid Git repository: {config.repo_path}") from e

        self._lock = threading.RLock()

    @property
    def project_name(self) -> str:
        return self.config.project_name or Path(self.config.repo_path).resolve().name

    @property
    def project_uri(self) -> str:
        if self.config.project_uri:
            return self.config.project_uri
        with self._lock:
            for remote in self.repo.remotes:
                if remote.name == "origin":
                    return remote.url
        return str(Path(self.config.repo_path).resolve())

    def resolve(self, revision: str) -> CommitRef:
        """Resolve a revision (hash, tag or branch) to a CommitRef.

        Args:
            revision: Any revision understood by git

        Returns:
            CommitRef for the revision

        Raises:
            ValueError: If commit not found
        """
        try:
            with self._lock:
                commit = self.repo.commit(revision)
        except (git.exc.BadName, ValueError) as e:
            raise ValueError(f"Commit not found: {revision}") from e
        return CommitRef(self, commit)

    def iter_commits(self, revision: str = "HEAD", max_count: Optional[int] = None) -> Iterator[CommitRef]:
        """Iterate commits reachable from a revision, newest first.

        Args:
            revision: Revision to start from (default: HEAD)
            max_count: Maximum number of commits to yield

        Yields:
            CommitRef objects
        """
        kwargs = {}
        if max_count:
            kwargs["max_count"] = max_count

        with self._lock:
            commits = list(self.repo.iter_commits(revision, **kwargs))
        for commit in commits:
            yield CommitRef(self, commit)

    def parents_of(self, commit: Commit) -> List[Commit]:
        """Read the direct parents of a commit.

        Raises:
            GitAccessError: If the commit object cannot be read
        """
        try:
            with self._lock:
                return list(commit.parents)
        except (ValueError, OSError, git.exc.GitError) as e:
            raise GitAccessError(f"Cannot read parents of {commit.hexsha}: {e}", commit.hexsha) from e

    def commit_info(self, commit: Commit) -> CommitInfo:
        """Build the serializable identity of a commit."""
        with self._lock:
            return CommitInfo(
                hash=commit.hexsha,
                short_hash=commit.hexsha[:7],
                authored_at=datetime.fromtimestamp(commit.authored_date),
                committed_at=datetime.fromtimestamp(commit.committed_date),
                parent_hashes=[p.hexsha for p in commit.parents],
            )

    def changed_files(self, old: Commit, new: Commit) -> List[FileDiffEntry]:
        """Compute the source-file diff entries between two commit trees.

        Args:
            old: Older commit
            new: Newer commit

        Returns:
            List of FileDiffEntry objects with their zero-context hunks

        Raises:
            GitAccessError: If the trees or the patch cannot be read
        """
        try:
            with self._lock:
                diff_index = old.diff(new, M=True)
                patch_text = self.repo.git.diff(
                    "--unified=0", "-M", "--no-ext-diff", "--no-color", old.hexsha, new.hexsha
                )
        except (ValueError, OSError, git.exc.GitError) as e:
            raise GitAccessError(
                f"Cannot diff {old.hexsha[:7]}..{new.hexsha[:7]}: {e}", new.hexsha
            ) from e

        hunks_by_path = self._parse_hunks(patch_text, new.hexsha)

        entries = []
        for diff_item in diff_index:
            change_type = _CHANGE_TYPES.get(diff_item.change_type, "modified")
            old_path = None if change_type == "added" else diff_item.a_path
            new_path = None if change_type == "deleted" else diff_item.b_path
            if not self._should_include_file(old_path or "") and not self._should_include_file(new_path or ""):
                continue

            hunks = hunks_by_path.get(new_path or "") or hunks_by_path.get(old_path or "") or []
            entries.append(
                FileDiffEntry(
                    old_path=old_path,
                    new_path=new_path,
                    change_type=change_type,
                    hunks=hunks,
                )
            )

        return entries

    def list_source_files(self, commit: Commit) -> List[str]:
        """List every source file in a commit's tree.

        Args:
            commit: Commit whose tree to walk

        Returns:
            Sorted list of repository-relative paths
        """
        try:
            with self._lock:
                paths = [
                    item.path
                    for item in commit.tree.traverse()
                    if item.type == "blob" and self._should_include_file(item.path)
                ]
        except (ValueError, OSError, git.exc.GitError) as e:
            raise GitAccessError(f"Cannot walk tree of {commit.hexsha}: {e}", commit.hexsha) from e
        return sorted(paths)

    def read_source(self, commit: Commit, file_path: str) -> Optional[str]:
        """Read the content of a source file at a specific commit.

        Args:
            commit: Commit to read from
            file_path: Path to file in repository

        Returns:
            Decoded file content, or None if the file is absent, not a blob or too large

        Raises:
            GitAccessError: If the blob cannot be read
            UnicodeDecodeError: If the blob is not valid UTF-8
        """
        with self._lock:
            try:
                blob = commit.tree / file_path
            except KeyError:
                # File doesn't exist in this commit
                return None

            if blob.type != "blob":
                return None

            if blob.size > self.config.max_file_size_bytes:
                logger.info("source_file_too_large", file_path=file_path, size_bytes=blob.size)
                return None

            try:
                data = blob.data_stream.read()
            except (ValueError, OSError, git.exc.GitError) as e:
                raise GitAccessError(
                    f"Cannot read {file_path} at {commit.hexsha[:7]}: {e}", commit.hexsha
                ) from e

        return data.decode("utf-8")

    def _parse_hunks(self, patch_text: str, commit_hash: str) -> Dict[str, List[HunkRange]]:
        """Parse a zero-context unified diff into hunks keyed by file path."""
        try:
            patch_set = PatchSet(StringIO(patch_text))
        except UnidiffParseError as e:
            raise GitAccessError(f"Unparseable diff for {commit_hash}: {e}", commit_hash) from e

        hunks_by_path: Dict[str, List[HunkRange]] = {}
        for patched_file in patch_set:
            if patched_file.is_binary_file:
                continue
            hunks_by_path[patched_file.path] = [
                HunkRange(
                    source_start=hunk.source_start,
                    source_length=hunk.source_length,
                    target_start=hunk.target_start,
                    target_length=hunk.target_length,
                )
                for hunk in patched_file
            ]
        return hunks_by_path

    def _should_include_file(self, file_path: str) -> bool:
        """Check if a file is a source file the detector understands.

        Args:
            file_path: File path

        Returns:
            True if file should be included
        """
        return bool(file_path) and file_path.endswith(self.config.source_extension)

    def is_test_path(self, file_path: str) -> bool:
        return any(marker in file_path for marker in self.config.test_path_markers)
