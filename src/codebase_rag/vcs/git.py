import subprocess
from pathlib import Path
from typing import Optional

from codebase_rag.models.index_state import UNKNOWN_COMMIT
from codebase_rag.utils.progress import log_debug
from codebase_rag.vcs.base import VCSProvider


class Git(VCSProvider):
    """Git VCS provider using the ``git`` executable."""

    @staticmethod
    def detect(workspace_path: str) -> bool:
        """Detect if this workspace uses Git.

        ``.git`` may be a directory or, for worktrees and submodules, a file.
        """
        return (Path(workspace_path) / ".git").exists()

    def _run(self, workspace_path: str, *args: str) -> Optional[str]:
        """Run a git command; stdout on success, None on any failure."""
        cmd = ["git", "-C", str(workspace_path), *args]
        log_debug(f"Git: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError:
            # git is not installed
            return None

        if result.returncode != 0:
            return None
        return result.stdout

    def get_current_commit(self, workspace_path: str) -> str:
        output = self._run(workspace_path, "rev-parse", "HEAD")
        if not output or not output.strip():
            return UNKNOWN_COMMIT
        return output.strip()

    def get_changed_files_since(self, workspace_path: str, commit_hash: str) -> list[str]:
        if not commit_hash or commit_hash == UNKNOWN_COMMIT:
            return []
        output = self._run(workspace_path, "diff", "--name-only", commit_hash, "HEAD")
        if output is None:
            return []
        return [line.strip() for line in output.split("\n") if line.strip()]
