"""Utility modules for codebase-rag."""

from codebase_rag.utils.batching import (
    build_token_batches,
    estimate_tokens,
    fixed_size_batches,
)
from codebase_rag.utils.cancellation import CancellationToken
from codebase_rag.utils.debug import DebugLogger
from codebase_rag.utils.progress import (
    create_progress_bar,
    log_debug,
    log_error,
    log_info,
    log_success,
    log_warning,
    update_progress,
)

__all__ = [
    "build_token_batches",
    "estimate_tokens",
    "fixed_size_batches",
    "CancellationToken",
    "DebugLogger",
    "create_progress_bar",
    "update_progress",
    "log_info",
    "log_warning",
    "log_error",
    "log_success",
    "log_debug",
]
