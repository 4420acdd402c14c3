"""Base class for output writers."""

from abc import ABC, abstractmethod

from satdminer.models import SATDDifference, SATDSnapshot


class OutputWriter(ABC):
    """Writes mining results to an output format."""

    @abstractmethod
    def write_diff(self, diff: SATDDifference) -> None:
        """Write the SATD difference between two revisions.

        Args:
            diff: Result of one revision-pair comparison

        Raises:
            OSError: If the output cannot be written
        """
        pass

    def write_snapshot(self, snapshot: SATDSnapshot) -> None:
        """Write the SATD of a single revision. Optional for writers."""

    @abstractmethod
    def close(self) -> None:
        """Flush and release any open outputs."""
        pass

    def __enter__(self) -> "OutputWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
