"""Search option models."""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


SearchMode = Literal["hybrid", "vector", "keyword"]


class SearchOptions(BaseModel):
    """Options accepted by ``Searcher.search``.

    Attributes:
        max_results: Maximum results to return (at least 1)
        file_types: Optional allow-list of file extensions (e.g. [".py", ".ts"])
        exclude_tests: Drop chunks whose path looks like a test file
        mode: Retrieval mode; None lets the searcher pick based on the index
        rerank: Rescore the fused candidates with the configured reranker
    """

    max_results: int = Field(
        default=10, ge=1, description="Max results to return"
    )
    file_types: Optional[List[str]] = Field(
        None, description="Allowed file extensions (suffix match)"
    )
    exclude_tests: bool = Field(
        default=False, description="Exclude test files"
    )
    mode: Optional[SearchMode] = Field(
        None, description="hybrid, vector or keyword"
    )
    rerank: bool = Field(
        default=False, description="Apply cross-encoder reranking"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "max_results": 5,
                "file_types": [".ts", ".tsx"],
                "exclude_tests": True,
                "mode": "hybrid",
                "rerank": False,
            }
        }
    )

    @field_validator("file_types")
    @classmethod
    def normalize_file_types(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        """Strip blanks and make sure every extension starts with a dot."""
        if v is None:
            return None
        cleaned = []
        for ext in v:
            ext = ext.strip()
            if not ext:
                continue
            cleaned.append(ext if ext.startswith(".") else f".{ext}")
        return cleaned or None
