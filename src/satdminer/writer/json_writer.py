"""JSON Lines output for SATD differences and snapshots."""

import json
from pathlib import Path
from typing import IO, Any, Dict, Optional

import structlog

from satdminer.models import SATDDifference, SATDSnapshot
from satdminer.writer.base import OutputWriter

logger = structlog.get_logger(__name__)


class JsonLinesWriter(OutputWriter):
    """Appends one JSON document per line to ``diffs.jsonl`` / ``snapshots.jsonl``."""

    def __init__(self, output_dir: Path) -> None:
        """Initialize the writer.

        Args:
            output_dir: Directory receiving the output files (created if missing)
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.diffs_file = self.output_dir / "diffs.jsonl"
        self.snapshots_file = self.output_dir / "snapshots.jsonl"
        self._diffs: Optional[IO[str]] = None
        self._snapshots: Optional[IO[str]] = None
        self.diffs_written = 0
        self.snapshots_written = 0

    def write_diff(self, diff: SATDDifference) -> None:
        if self._diffs is None:
            self._diffs = open(self.diffs_file, "a", encoding="utf-8")

        data = diff.model_dump(mode="json")
        for record, instance in zip(data["instances"], diff.instances):
            record["instance_id"] = instance.instance_id
        self._write(self._diffs, data)
        self.diffs_written += 1

    def write_snapshot(self, snapshot: SATDSnapshot) -> None:
        if self._snapshots is None:
            self._snapshots = open(self.snapshots_file, "a", encoding="utf-8")

        data = snapshot.model_dump(mode="json")
        for record, entry in zip(data["entries"], snapshot.entries):
            record["snapshot_instance_id"] = entry.snapshot_instance_id
        self._write(self._snapshots, data)
        self.snapshots_written += 1

    def close(self) -> None:
        for handle in (self._diffs, self._snapshots):
            if handle is not None:
                handle.close()
        self._diffs = None
        self._snapshots = None
        logger.debug(
            "json_writer_closed",
            output_dir=str(self.output_dir),
            diffs=self.diffs_written,
            snapshots=self.snapshots_written,
        )

    def _write(self, handle: IO[str], data: Dict[str, Any]) -> None:
        handle.write(json.dumps(data, default=str))
        handle.write("\n")
        handle.flush()
