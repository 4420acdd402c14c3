"""Extraction of SATD comments from Java sources at a given revision.

Sources are read straight from the git object store and parsed with
tree-sitter; nothing is exported to disk.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import structlog
from pydantic import BaseModel, Field
from tree_sitter_language_pack import get_parser

from satdminer.detector import BaseSATDDetector
from satdminer.exceptions import GitAccessError
from satdminer.extraction.commit_ref import CommitRef
from satdminer.models import NO_METHOD, Comment, SATDType

logger = structlog.get_logger(__name__)

CLASS_NODE_TYPES = frozenset(
    {
        "class_declaration",
        "interface_declaration",
        "enum_declaration",
        "record_declaration",
        "annotation_type_declaration",
    }
)
METHOD_NODE_TYPES = frozenset({"method_declaration", "constructor_declaration"})
LINE_COMMENT_TYPES = frozenset({"line_comment"})
COMMENT_NODE_TYPES = frozenset({"line_comment", "block_comment", "comment"})

SOURCE_ROOTS = ("main/java/", "main/resources/", "test/java/")


class ExtractionResult(BaseModel):
    """SATD comments found in one revision, grouped by file."""

    comments: Dict[str, List[Comment]] = Field(default_factory=dict, description="SATD per file")
    errored_files: List[str] = Field(default_factory=list, description="Files that could not be parsed")


@dataclass
class _RawComment:
    text: str
    start_line: int
    end_line: int
    containing_class: str
    containing_method: str
    is_line_comment: bool
    own_line: bool


class CommentExtractor:
    """Finds SATD comments in the source files of a revision."""

    def __init__(self, detector: BaseSATDDetector, language: str = "java") -> None:
        """Initialize the extractor.

        Args:
            detector: Detector deciding which comments are SATD
            language: tree-sitter language name
        """
        self.detector = detector
        self.language = language

    def extract(self, ref: CommitRef, files: Optional[Sequence[str]] = None) -> ExtractionResult:
        """Extract SATD comments from a revision.

        Args:
            ref: Revision to read
            files: Paths to search. None means every source file in the tree;
                an empty sequence means no files.

        Returns:
            ExtractionResult with comments in file-then-source order
        """
        if files is None:
            files = ref.extractor.list_source_files(ref.commit)

        parser = get_parser(self.language)
        result = ExtractionResult()
        seen = set()

        for file_path in files:
            if file_path in seen:
                continue
            seen.add(file_path)

            try:
                source = ref.extractor.read_source(ref.commit, file_path)
            except (GitAccessError, UnicodeDecodeError) as e:
                logger.warning(
                    "comment_extraction_failed",
                    file_path=file_path,
                    commit=ref.short_hash,
                    error=str(e),
                )
                result.errored_files.append(file_path)
                continue

            if source is None:
                logger.warning("source_file_unavailable", file_path=file_path, commit=ref.short_hash)
                result.errored_files.append(file_path)
                continue

            comments = self.parse_comments(source, file_path, parser)
            if comments is None:
                logger.warning("source_file_unparseable", file_path=file_path, commit=ref.short_hash)
                result.errored_files.append(file_path)
                continue

            satd = [self._label(comment) for comment in comments if self.detector.safe_is_satd(comment.text)]
            if satd:
                result.comments[file_path] = satd

        logger.debug(
            "comments_extracted",
            commit=ref.short_hash,
            files=len(seen),
            files_with_satd=len(result.comments),
            errored=len(result.errored_files),
        )
        return result

    def parse_comments(self, source: str, file_path: str, parser=None) -> Optional[List[Comment]]:
        """Parse every comment of a source file, SATD or not.

        Args:
            source: File content
            file_path: Repository-relative path, used when no class encloses a comment
            parser: Optional tree-sitter parser to reuse

        Returns:
            Comments in source order, or None if the file has syntax errors
        """
        parser = parser or get_parser(self.language)
        tree = parser.parse(source.encode("utf-8"))
        root = tree.root_node
        if root is None or root.has_error:
            return None

        lines = source.split("\n")
        package = _package_name(root)
        fallback_class = derive_containing_class(file_path, package)

        raw: List[_RawComment] = []
        # (node, class path, method name); children pushed reversed to keep source order
        stack = [(root, (), NO_METHOD)]
        while stack:
            node, classes, method = stack.pop()
            node_type = node.type

            if node_type in COMMENT_NODE_TYPES:
                raw.append(self._raw_comment(node, lines, classes, method, package, fallback_class))
                continue

            if node_type in CLASS_NODE_TYPES:
                name = _field_text(node, "name")
                if name:
                    classes = classes + (name,)
            elif node_type in METHOD_NODE_TYPES and method == NO_METHOD:
                method = _field_text(node, "name") or NO_METHOD

            for child in reversed(node.children):
                stack.append((child, classes, method))

        return [self._to_comment(group) for group in _group_line_comments(raw)]

    def _raw_comment(self, node, lines, classes, method, package, fallback_class) -> _RawComment:
        text = node.text.decode("utf-8", errors="replace")
        start_row, start_col = node.start_point
        end_row = node.end_point[0]
        is_line = node.type in LINE_COMMENT_TYPES or (node.type == "comment" and text.startswith("//"))
        prefix = lines[start_row][:start_col] if start_row < len(lines) else ""

        if classes:
            containing_class = ".".join(classes)
            if package:
                containing_class = f"{package}.{containing_class}"
        else:
            containing_class = fallback_class

        return _RawComment(
            text=normalize_comment(text),
            start_line=start_row + 1,
            end_line=end_row + 1,
            containing_class=containing_class,
            containing_method=method,
            is_line_comment=is_line,
            own_line=not prefix.strip(),
        )

    def _to_comment(self, raw: _RawComment) -> Comment:
        return Comment(
            text=raw.text,
            start_line=raw.start_line,
            end_line=raw.end_line,
            containing_class=raw.containing_class,
            containing_method=raw.containing_method,
        )

    def _label(self, comment: Comment) -> Comment:
        category = self.detector.safe_classify(comment.text)
        if category == SATDType.WITHOUT_CLASSIFICATION:
            category = SATDType.IMPLEMENTATION
        return comment.model_copy(update={"classification": category.value})


def normalize_comment(text: str) -> str:
    """Strip comment delimiters and per-line decoration."""
    text = text.strip()
    if text.startswith("//"):
        return text[2:].strip()

    if text.startswith("/*"):
        text = text[2:]
        if text.startswith("*"):
            text = text[1:]
    if text.endswith("*/"):
        text = text[:-2]

    cleaned = []
    for line in text.split("\n"):
        line = line.strip()
        if line.startswith("*"):
            line = line[1:].strip()
        if line:
            cleaned.append(line)
    return "\n".join(cleaned)


def derive_containing_class(file_path: str, package: str = "") -> str:
    """Class name implied by a Java file path when no declaration encloses a comment."""
    class_path = file_path[: -len(".java")] if file_path.endswith(".java") else file_path
    if class_path.startswith("src/"):
        class_path = class_path[len("src/"):]
    for root in SOURCE_ROOTS:
        if class_path.startswith(root):
            class_path = class_path[len(root):]
            break

    simple_name = class_path.rsplit("/", 1)[-1]
    if package:
        return f"{package}.{simple_name}"
    return class_path.replace("/", ".")


def _group_line_comments(raw: List[_RawComment]) -> List[_RawComment]:
    """Merge runs of own-line ``//`` comments on adjacent lines in one scope."""
    grouped: List[_RawComment] = []
    for comment in raw:
        previous = grouped[-1] if grouped else None
        if (
            previous is not None
            and previous.is_line_comment
            and comment.is_line_comment
            and previous.own_line
            and comment.own_line
            and comment.start_line == previous.end_line + 1
            and comment.containing_class == previous.containing_class
            and comment.containing_method == previous.containing_method
        ):
            previous.text = f"{previous.text}\n{comment.text}" if previous.text else comment.text
            previous.end_line = comment.end_line
            continue
        grouped.append(
            _RawComment(
                text=comment.text,
                start_line=comment.start_line,
                end_line=comment.end_line,
                containing_class=comment.containing_class,
                containing_method=comment.containing_method,
                is_line_comment=comment.is_line_comment,
                own_line=comment.own_line,
            )
        )
    return grouped


def _field_text(node, field: str) -> str:
    child = node.child_by_field_name(field)
    if child is None:
        return ""
    return child.text.decode("utf-8", errors="replace")


def _package_name(root) -> str:
    for child in root.children:
        if child.type == "package_declaration":
            for part in child.children:
                if part.type in ("scoped_identifier", "identifier"):
                    return part.text.decode("utf-8", errors="replace")
    return ""
