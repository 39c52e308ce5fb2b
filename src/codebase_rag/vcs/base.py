"""Base abstract class for version control system providers.

The indexer only needs two things from source control: the identifier of
the commit being indexed, and the files touched since a previous commit.
"""

from abc import ABC, abstractmethod


class VCSProvider(ABC):
    """Abstract base class for version control system providers."""

    @staticmethod
    @abstractmethod
    def detect(workspace_path: str) -> bool:
        """Detect if this VCS is used in the given workspace.

        Args:
            workspace_path: Path to the workspace directory to check

        Returns:
            True if this VCS is detected in the workspace, False otherwise
        """
        pass

    @abstractmethod
    def get_current_commit(self, workspace_path: str) -> str:
        """Identifier of the checked-out commit.

        Returns:
            The commit id, or "unknown" when it cannot be determined. Never raises.
        """
        pass

    @abstractmethod
    def get_changed_files_since(self, workspace_path: str, commit_hash: str) -> list[str]:
        """Files that differ between ``commit_hash`` and the current commit.

        Returns:
            Paths relative to the workspace root; [] on any failure. Never raises.
        """
        pass
