"""Discovery of indexable source files in a repository."""

import fnmatch
import os
from pathlib import Path
from typing import List, Optional

from ..utils.cancellation import CancellationToken

INDEXABLE_EXTENSIONS = (
    ".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs",
    ".py", ".pyx",
    ".go",
    ".rs",
    ".java", ".kt", ".scala",
    ".rb",
    ".php",
    ".c", ".cpp", ".h", ".hpp",
    ".cs",
    ".swift",
    ".vue", ".svelte",
    ".json", ".yaml", ".yml", ".toml",
    ".md", ".mdx",
    # Mainframe
    ".cbl", ".cob", ".cobol",   # COBOL source
    ".cpy", ".copy",            # COBOL copybooks
    ".jcl",                     # Job Control Language
    ".pli", ".pl1",             # PL/I
    ".asm", ".s",               # Assembly
    ".sql",
    ".bms",                     # CICS BMS maps
    ".prc", ".proc",            # JCL procedures
)

# Directory names pruned anywhere in the tree
EXCLUDED_DIRS = frozenset({
    "node_modules",
    ".git",
    "dist",
    "build",
    ".next",
    "coverage",
    "__pycache__",
    "venv",
    ".venv",
    "vendor",
})

# File name globs excluded anywhere in the tree
EXCLUDED_FILE_PATTERNS = (
    "*.min.js",
    "*.bundle.js",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
)

LANGUAGE_MAP = {
    ".ts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "jsx",
    ".py": "python",
    ".go": "go",
    ".rs": "rust",
    ".java": "java",
    ".kt": "kotlin",
    ".rb": "ruby",
    ".php": "php",
    ".c": "c",
    ".cpp": "cpp",
    ".h": "c",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".swift": "swift",
    ".vue": "vue",
    ".svelte": "svelte",
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".md": "markdown",
    ".cbl": "cobol",
    ".cob": "cobol",
    ".cobol": "cobol",
    ".cpy": "cobol",
    ".copy": "cobol",
    ".jcl": "jcl",
    ".pli": "pli",
    ".pl1": "pli",
    ".asm": "asm",
    ".s": "asm",
    ".sql": "sql",
    ".bms": "bms",
    ".prc": "jcl",
    ".proc": "jcl",
}


def get_language(file_path: str) -> str:
    """Language name for a path's extension, or "" when unknown."""
    return LANGUAGE_MAP.get(os.path.splitext(file_path)[1].lower(), "")


def is_indexable(file_path: str) -> bool:
    """Whether a relative POSIX path passes the extension and exclude filters.

    Hidden path components (starting with ".") are skipped, which also keeps
    the index store directory out of the index.
    """
    parts = file_path.split("/")
    if any(part.startswith(".") for part in parts[:-1]):
        return False
    if any(part in EXCLUDED_DIRS for part in parts[:-1]):
        return False
    name = parts[-1]
    if name.startswith("."):
        return False
    if any(fnmatch.fnmatchcase(name, pattern) for pattern in EXCLUDED_FILE_PATTERNS):
        return False
    return name.endswith(INDEXABLE_EXTENSIONS)


def discover_files(
    repo_path: Path,
    cancellation: Optional[CancellationToken] = None,
) -> List[str]:
    """List indexable files under repo_path.

    Args:
        repo_path: Repository root
        cancellation: Checked once per directory visited

    Returns:
        Sorted, de-duplicated paths relative to repo_path with "/" separators

    Raises:
        IndexingCancelledError: If cancellation is requested
    """
    repo_path = Path(repo_path)
    files = set()

    for dirpath, dirnames, filenames in os.walk(repo_path):
        if cancellation is not None:
            cancellation.raise_if_cancelled("file discovery")

        # Prune in place so os.walk never descends into excluded trees
        dirnames[:] = sorted(
            d for d in dirnames
            if d not in EXCLUDED_DIRS and not d.startswith(".")
        )

        rel_dir = Path(dirpath).relative_to(repo_path).as_posix()
        for name in filenames:
            rel_path = name if rel_dir == "." else f"{rel_dir}/{name}"
            if is_indexable(rel_path):
                files.add(rel_path)

    return sorted(files)
