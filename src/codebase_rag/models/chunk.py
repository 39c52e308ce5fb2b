"""CodeChunk data model: a semantically bounded span of source text."""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional


# Attribute name -> key used in the persisted metadata.json records
_METADATA_KEYS = {
    "id": "id",
    "file_path": "filePath",
    "start_line": "startLine",
    "end_line": "endLine",
    "content": "content",
    "language": "language",
    "chunk_type": "chunkType",
    "name": "name",
    "parent_name": "parentName",
    "documentation": "documentation",
    "domain_categories": "domainCategories",
    "domain_context": "domainContext",
    "is_public_api": "isPublicApi",
    "signature": "signature",
}


def make_chunk_id(file_path: str, start_line: int, end_line: int) -> str:
    """Build the stable ``path:start-end`` chunk identifier."""
    return f"{file_path}:{start_line}-{end_line}"


@dataclass(frozen=True)
class CodeChunk:
    """A contiguous span of a source file, the atomic unit of retrieval.

    Chunks are produced by a Chunker and never mutated afterwards; when a file
    changes, its chunks are dropped and replaced by freshly chunked ones.

    Attributes:
        id: Stable identifier, typically ``path:startLine-endLine``
        file_path: Path relative to the repository root (POSIX separators)
        start_line: First line of the span (1-based)
        end_line: Last line of the span (1-based, inclusive)
        content: Exact source text of the line range
        language: Language name derived from the file extension
        chunk_type: Kind of construct (function, class, method, ...)
        name: Name of the construct
        parent_name: Enclosing construct, if nested
        documentation: Doc comment attached to the construct
        domain_categories: Business-domain tags
        domain_context: Free-text domain description
        is_public_api: Whether the construct is exported
        signature: Function/method signature
    """

    id: str
    file_path: str
    start_line: int
    end_line: int
    content: str
    language: str = ""
    chunk_type: Optional[str] = None
    name: Optional[str] = None
    parent_name: Optional[str] = None
    documentation: Optional[str] = None
    domain_categories: Optional[List[str]] = field(default=None, hash=False)
    domain_context: Optional[str] = None
    is_public_api: Optional[bool] = None
    signature: Optional[str] = None

    def __post_init__(self):
        if self.start_line > self.end_line:
            raise ValueError(
                f"Chunk {self.id!r} has start_line {self.start_line} after end_line {self.end_line}"
            )

    def lexical_text(self) -> str:
        """Text fed to the BM25 index: content plus descriptive fields."""
        parts = [self.content, self.name, self.documentation, self.domain_context, self.file_path]
        return " ".join(p for p in parts if p)

    def to_metadata(self) -> Dict[str, Any]:
        """Serialise to the camelCase record stored in metadata.json.

        Optional fields that are None are omitted.
        """
        record: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if f.name == "domain_categories":
                value = list(value)
            record[_METADATA_KEYS[f.name]] = value
        return record

    @classmethod
    def from_metadata(cls, record: Dict[str, Any]) -> "CodeChunk":
        """Rebuild a chunk from a metadata.json record.

        Raises:
            KeyError: If a required field is missing
            ValueError: If the line range is invalid
        """
        kwargs = {}
        for attr, key in _METADATA_KEYS.items():
            if key in record:
                kwargs[attr] = record[key]
        for required in ("id", "file_path", "start_line", "end_line", "content"):
            if required not in kwargs:
                raise KeyError(_METADATA_KEYS[required])
        kwargs["start_line"] = int(kwargs["start_line"])
        kwargs["end_line"] = int(kwargs["end_line"])
        return cls(**kwargs)
