"""Auto-detection of the version control system used by a repository."""

from typing import Optional

from codebase_rag.vcs.base import VCSProvider
from codebase_rag.vcs.git import Git


# Providers are checked in order, so put more common ones first
VCS_PROVIDERS: list[type[VCSProvider]] = [
    Git,
]


def detect_vcs(workspace_path: str) -> Optional[VCSProvider]:
    """Return an instance of the first provider that recognises the workspace.

    Args:
        workspace_path: Path to the workspace directory to check

    Returns:
        An instance of the detected VCS provider, or None if no VCS is detected
    """
    if not workspace_path or not str(workspace_path).strip():
        return None

    for provider_class in VCS_PROVIDERS:
        if provider_class.detect(str(workspace_path)):
            return provider_class()

    return None
