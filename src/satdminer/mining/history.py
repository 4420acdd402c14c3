"""Mining SATD across many revision pairs: commit history and release series."""

import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Deque, Iterable, Iterator, Optional, Sequence, Tuple

import structlog

from satdminer.detector import BaseSATDDetector
from satdminer.exceptions import GitAccessError
from satdminer.extraction.comment_extractor import CommentExtractor
from satdminer.extraction.commit_ref import CommitRef
from satdminer.extraction.git_extractor import GitExtractor
from satdminer.mining.miner import RepositoryDiffMiner
from satdminer.models import SATDDifference

logger = structlog.get_logger(__name__)

CommitPair = Tuple[CommitRef, CommitRef]


class HistoryMiner:
    """Runs pairwise SATD comparisons over a repository's history.

    Each pair gets its own alignment state, so pairs can run on a thread pool;
    git reads are serialized inside the GitExtractor. ``stop()`` ends a run
    between pairs. A pair already running always completes.
    """

    def __init__(
        self,
        extractor: GitExtractor,
        detector: BaseSATDDetector,
        max_workers: int = 4,
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        """Initialize the history miner.

        Args:
            extractor: Git access for the repository
            detector: SATD detector
            max_workers: Number of pairs mined concurrently
            stop_event: Event that requests early termination when set
        """
        self.extractor = extractor
        self.detector = detector
        self.comment_extractor = CommentExtractor(detector)
        self.max_workers = max(1, max_workers)
        self.stop_event = stop_event or threading.Event()

    def stop(self) -> None:
        self.stop_event.set()

    @property
    def stopped(self) -> bool:
        return self.stop_event.is_set()

    def commit_pairs(
        self,
        revision: str = "HEAD",
        max_commits: Optional[int] = None,
        first_parent: bool = False,
    ) -> Iterator[CommitPair]:
        """Walk ancestry breadth-first, yielding (parent, child) pairs.

        Args:
            revision: Revision to start from
            max_commits: Maximum number of child commits to visit
            first_parent: Only follow the first parent of merges

        Yields:
            (parent, child) CommitRef pairs; each commit is expanded once
        """
        head = self.extractor.resolve(revision)
        queue: Deque[CommitRef] = deque([head])
        visited = {head}
        expanded = 0

        while queue and not self.stopped:
            if max_commits and expanded >= max_commits:
                break
            child = queue.popleft()
            expanded += 1

            try:
                parents = child.parents()
            except GitAccessError as e:
                logger.warning("commit_parents_unreadable", commit=child.short_hash, error=str(e))
                continue

            if first_parent:
                parents = parents[:1]

            for parent in parents:
                yield parent, child
                if parent not in visited:
                    visited.add(parent)
                    queue.append(parent)

    def release_pairs(self, revisions: Sequence[str]) -> Iterator[CommitPair]:
        """Consecutive pairs of a release list given oldest first."""
        refs = [self.extractor.resolve(revision) for revision in revisions]
        for old, new in zip(refs, refs[1:]):
            yield old, new

    def mine_history(
        self,
        revision: str = "HEAD",
        max_commits: Optional[int] = None,
        first_parent: bool = False,
    ) -> Iterator[SATDDifference]:
        """Mine every (parent, child) pair reachable from a revision.

        Yields:
            SATDDifference per pair, in traversal order
        """
        yield from self.mine_pairs(self.commit_pairs(revision, max_commits, first_parent))

    def mine_releases(self, revisions: Sequence[str]) -> Iterator[SATDDifference]:
        """Mine each consecutive pair of a release list given oldest first.

        Yields:
            SATDDifference per pair, oldest pair first
        """
        yield from self.mine_pairs(self.release_pairs(revisions))

    def mine_pair(self, old: CommitRef, new: CommitRef) -> SATDDifference:
        miner = RepositoryDiffMiner(old, new, self.detector, self.comment_extractor)
        return miner.mine_diff()

    def mine_pairs(self, pairs: Iterable[CommitPair]) -> Iterator[SATDDifference]:
        """Mine pairs concurrently and yield results in input order.

        Pairs whose git data cannot be read are logged and skipped.
        """
        window = self.max_workers * 2
        pending: Deque[Tuple[CommitPair, Future]] = deque()

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            for pair in pairs:
                if self.stopped:
                    break
                pending.append((pair, pool.submit(self.mine_pair, *pair)))
                while len(pending) >= window:
                    result = self._collect(*pending.popleft())
                    if result is not None:
                        yield result

            if self.stopped:
                for _, future in pending:
                    future.cancel()

            while pending:
                pair, future = pending.popleft()
                if future.cancelled():
                    continue
                result = self._collect(pair, future)
                if result is not None:
                    yield result

    def _collect(self, pair: CommitPair, future: Future) -> Optional[SATDDifference]:
        old, new = pair
        try:
            return future.result()
        except GitAccessError as e:
            logger.warning(
                "satd_pair_skipped",
                old_commit=old.short_hash,
                new_commit=new.short_hash,
                error=str(e),
            )
            return None
