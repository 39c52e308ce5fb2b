from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from ..models.chunk import CodeChunk


class Chunker(ABC):
    @abstractmethod
    def chunk_file(self, file_path: str, repo_path: Path) -> List[CodeChunk]:
        """Split one file into chunks.

        Args:
            file_path: Path relative to repo_path, POSIX separators
            repo_path: Repository root

        Raises:
            OSError: If the file cannot be read
            UnicodeDecodeError: If the file is not valid UTF-8
        """
