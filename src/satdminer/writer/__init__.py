"""Output writers for mining results."""

from satdminer.writer.base import OutputWriter
from satdminer.writer.json_writer import JsonLinesWriter

__all__ = [
    "OutputWriter",
    "JsonLinesWriter",
]
