"""Exception types raised by the SATD miner."""


class GitAccessError(OSError):
    """The git object store could not be read for a commit or tree entry.

    Raised for a single revision; callers walking many revisions may skip the
    affected commit and continue.
    """

    def __init__(self, message: str, commit_hash: str = "") -> None:
        super().__init__(message)
        self.commit_hash = commit_hash


class InvariantViolation(RuntimeError):
    """Alignment bookkeeping reached an impossible state.

    Indicates a programming error (e.g. a comment mapping bound twice), never a
    recoverable runtime condition.
    """
